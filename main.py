#!/usr/bin/env python3
"""
main.py - Entry point for joyorder (IL-2 joystick index keeper)

    python main.py                  check devices, fix IL-2 indices if needed
    python main.py view             list connected controllers + saved mapping
    python main.py init <folder>    save the current IL-2 setup as reference
    python main.py help
"""

import argparse
import configparser
import sys
from pathlib import Path

from colorama import Fore, Style

from joyorder.controller.initializer import build_mappings
from joyorder.controller.reconciler import DeviceMatchError, Reconciler
from joyorder.controller.sources import build_resolver
from joyorder.file.appconfig import AppConfig, AppConfigStore, ConfigError
from joyorder.file.backup import BackupError
from joyorder.file.il2config import parse_devices_file, used_joystick_indices
from joyorder.file.inireader import IniReader
from joyorder.file.settings import DEFAULT_SETTINGS_FILE, Settings
from joyorder.logger.logger import level_from_name, setup_logger

HELP_COMMANDS = ("help", "-h", "--help", "/?")


def confirm(question: str, assume_yes: bool = False) -> bool:
    if assume_yes:
        return True
    try:
        answer = input(f"{question} (y/N): ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def clean_folder_arg(raw: str) -> str:
    """Strip quotes and trailing separators a shell / drag&drop may leave."""
    folder = raw.strip().strip("\"'")
    return folder.rstrip("\\/") or folder


# ----------------------------------------------------------------------
# view
# ----------------------------------------------------------------------
def print_table(headers, rows):
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))
    line = "  ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
    print(Style.BRIGHT + line + Style.RESET_ALL)
    print("  ".join("-" * w for w in widths))
    for row in rows:
        print("  ".join(str(c).ljust(widths[i]) for i, c in enumerate(row)))


def cmd_view(log, settings, resolver, store) -> int:
    log.info("[SCAN] Scanning for connected joystick devices...")
    devices = resolver.resolve()

    if not devices:
        log.warning("No joystick devices found. Make sure they are connected and recognized by the OS.")
    else:
        print(f"\nFound {len(devices)} device(s):\n")
        print_table(
            ["Device", "VID", "PID", "GUID", "Unique ID"],
            [(d.name, d.vendor_id or "N/A", d.product_id or "N/A", d.guid, d.stable_key)
             for d in devices],
        )
        for d in devices:
            log.debug(f"[DEVICE] {d.name} instance={d.instance_id}")

    config = store.load()
    if config is None:
        print(f"\nNo configuration found. Run '{Fore.CYAN}init <folder>{Style.RESET_ALL}' first.")
        return 0

    print("\nStored configuration")
    print(f"  Devices file:  {config.devices_file_path}")
    print(f"  Bindings file: {config.bindings_file_path}")
    print(f"\nConfigured mappings ({len(config.device_mappings)}):\n")

    connected = {d.stable_key for d in devices}
    rows = []
    for m in sorted(config.device_mappings, key=lambda m: m.expected_index):
        if m.unique_identifier in connected:
            status = f"{Fore.GREEN}connected{Style.RESET_ALL}"
        else:
            status = f"{Fore.RED}NOT FOUND{Style.RESET_ALL}"
        rows.append((f"joy{m.expected_index}", m.name, m.unique_identifier, status))
    print_table(["Index", "Device Name", "Unique ID", "Status"], rows)

    used = used_joystick_indices(config.bindings_file_path)
    if used:
        print("\nBindings reference: " + ", ".join(f"joy{i}" for i in sorted(used)))
    return 0


# ----------------------------------------------------------------------
# init
# ----------------------------------------------------------------------
def cmd_init(log, settings, resolver, store, folder_arg, assume_yes=False) -> int:
    if not folder_arg:
        log.error("init requires the path to IL-2's input config folder.")
        print(f"Usage: joyorder init <config_folder>\n"
              f"The folder must contain {settings.devices_file_name} and "
              f"{settings.bindings_file_name}.")
        return 1

    folder = Path(clean_folder_arg(folder_arg)).expanduser().resolve()
    if not folder.is_dir():
        log.error(f"Folder not found: {folder} (received '{folder_arg}')")
        log.info("Enclose paths containing spaces in quotes.")
        return 1

    devices_file = folder / settings.devices_file_name
    bindings_file = folder / settings.bindings_file_name
    for f in (devices_file, bindings_file):
        if not f.is_file():
            log.error(f"{f.name} not found in: {folder}")
            return 1

    if store.exists() and not confirm("Configuration already exists. Overwrite?", assume_yes):
        log.info("Initialization cancelled.")
        return 0

    log.info(f"[INIT] Reading IL-2 devices file: {devices_file}")
    external = parse_devices_file(devices_file)
    log.info(f"[INIT] Found {len(external)} device(s) in IL-2 config")
    for dev in external:
        log.info(f"[INIT]   {dev}")

    log.info("[SCAN] Scanning connected devices...")
    connected = resolver.resolve()
    log.info(f"[SCAN] Found {len(connected)} connected device(s)")

    result = build_mappings(log, external, connected, settings.aliases)

    if result.unmatched:
        log.warning(f"{len(result.unmatched)} device(s) could not be matched. "
                    "Make sure all joysticks are connected before running init.")
        if not confirm("Continue with partial configuration?", assume_yes):
            log.info("Initialization cancelled.")
            return 1

    config = AppConfig(
        devices_file_path=str(devices_file),
        bindings_file_path=str(bindings_file),
        device_mappings=result.mappings,
    )
    store.save(config)
    log.info(f"[INIT] Configuration initialized with {len(result.mappings)} device mapping(s): "
             f"{store.path}")
    return 0


# ----------------------------------------------------------------------
# update
# ----------------------------------------------------------------------
def cmd_update(log, settings, resolver, store, dry_run=False) -> int:
    config = store.load()
    if config is None:
        log.error("No configuration found. Run 'init <config_folder>' first.")
        return 1

    log.info("[SCAN] Scanning connected devices...")
    connected = resolver.resolve()
    log.info(f"[SCAN] Found {len(connected)} connected device(s)")

    reconciler = Reconciler(log, config, settings.aliases)
    try:
        report = reconciler.run(connected, dry_run=dry_run)
    except DeviceMatchError as e:
        for err in e.errors:
            log.error(f"[MATCH] {err}")
        log.error("Aborting due to device errors. Connect all configured devices and try again.")
        return 1

    for backup in report.backups:
        log.debug(f"[BACKUP] {backup}")
    return 0


def show_help(settings) -> int:
    print(f"""\
joyorder - keeps IL-2 joystick bindings working when USB order changes

USAGE:
  joyorder [command] [arguments] [options]

COMMANDS:
  help | -h | --help | /?   Show this help
  view                      List connected controllers and the saved mapping
  init <config_folder>      Save IL-2's current device order as reference
                            (folder holds {settings.devices_file_name} and {settings.bindings_file_name})
  update (default)          Check connected devices and fix IL-2's joy indices
                            Backups: <file>.backup_YYYYMMDD_HHMMSS

OPTIONS:
  --settings PATH   INI settings file (default: {DEFAULT_SETTINGS_FILE})
  --logfile PATH    Log file (default: {settings.logfile})
  --yes             Answer yes to init prompts
  --dry-run         update: report changes without writing

EXIT CODES:
  0  success
  1  error (missing device, invalid config, I/O failure, ...)
""")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(prog="joyorder", add_help=False,
                                     description="IL-2 joystick index keeper")
    parser.add_argument("command", nargs="?", default="update")
    parser.add_argument("folder", nargs="?", default=None)
    parser.add_argument("-h", "--help", action="store_true")
    parser.add_argument("--settings", default=DEFAULT_SETTINGS_FILE)
    parser.add_argument("--logfile", default=None)
    parser.add_argument("--yes", "-y", action="store_true")
    parser.add_argument("--dry-run", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    command = (args.command or "update").lower()

    try:
        settings = Settings.from_ini(IniReader(args.settings))
    except (configparser.Error, UnicodeDecodeError) as e:
        log = setup_logger("joyorder", logfile=args.logfile or Settings().logfile)
        log.error(f"[SETTINGS] Cannot read {args.settings}: {e}")
        return 1

    if args.help or command in HELP_COMMANDS:
        return show_help(settings)

    log = setup_logger(
        "joyorder",
        logfile=args.logfile or settings.logfile,
        console_level=level_from_name(settings.console_level),
        color_console=settings.color,
    )
    log.info("Starting joyorder")
    if settings.ignored_sources:
        log.warning(f"[SETTINGS] Ignoring unknown device sources: {', '.join(settings.ignored_sources)}")

    resolver = build_resolver(log, settings)
    store = AppConfigStore(settings.app_config)

    try:
        if command == "view":
            return cmd_view(log, settings, resolver, store)
        if command == "init":
            return cmd_init(log, settings, resolver, store, args.folder, args.yes)
        if command in ("update", ""):
            return cmd_update(log, settings, resolver, store, args.dry_run)
    except (FileNotFoundError, ConfigError, BackupError) as e:
        log.error(str(e))
        return 1
    except OSError as e:
        log.error(f"I/O error: {e}")
        return 1

    log.error(f"Unknown command: {command}. Use 'joyorder help' for usage information.")
    return 1


if __name__ == "__main__":
    sys.exit(main())
