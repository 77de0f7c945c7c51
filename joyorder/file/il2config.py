#!/usr/bin/env python3
"""
il2config.py - Read/write IL-2's input config files

devices.txt:
    configId,guid,model|
    0,%22d04d97a0-e9af-11f0-0000545345440180%22,VKBsim%20T-Rudder
    1,...

current.map (bindings): free text, joystick inputs referenced as joy<N>,
e.g. joy0_b3, joy1_axis_x, joy2_pov0_0. Only the joy<N> prefix matters here.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote, unquote_plus

from joyorder.file.backup import scoped_write

DEVICES_HEADER = "configId,guid,model|"

# Not preceded by a word char, not followed by a digit: joy1 never hits joy10,
# but joy1_b3 still counts as a reference to joy1.
JOY_REF_RE = re.compile(r"\bjoy(\d+)(?!\d)", re.IGNORECASE)


@dataclass
class ExternalDevice:
    index: int
    guid: str
    model: str

    def __str__(self):
        return f"[joy{self.index}] {self.model} (GUID: {self.guid})"


# ---------------------------------------------------------------
# devices.txt
# ---------------------------------------------------------------
def parse_device_line(line: str):
    """One devices.txt row -> ExternalDevice, or None if the line is not a row."""
    if not line or not line.strip() or "," not in line:
        return None
    parts = line.split(",")
    if len(parts) < 3:
        return None
    try:
        index = int(parts[0].strip())
    except ValueError:
        return None  # header or garbage

    guid = unquote_plus(parts[1].strip()).strip().strip('"')
    model = unquote_plus(parts[2].strip()).rstrip("|").strip()
    return ExternalDevice(index, guid, model)


def parse_devices(lines) -> list[ExternalDevice]:
    devices = []
    for line in lines:
        dev = parse_device_line(line)
        if dev is not None:
            devices.append(dev)
    return devices


def parse_devices_file(path) -> list[ExternalDevice]:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Devices file not found: {path}")
    with path.open("r", encoding="utf-8-sig") as f:
        return parse_devices(f.read().splitlines())


def _encode(value: str) -> str:
    # quote() already emits %20 for spaces, never '+'
    return quote(value, safe="")


def format_devices(devices) -> str:
    lines = [DEVICES_HEADER]
    for dev in sorted(devices, key=lambda d: d.index):
        guid = _encode('"' + dev.guid + '"')
        lines.append(f"{dev.index},{guid},{_encode(dev.model)}")
    return "\n".join(lines) + "\n"


def write_devices_file(path, devices, log=None):
    """Rewrite devices.txt completely (backup first). Returns the backup path."""
    backup = scoped_write(path, format_devices(devices), log)
    if log:
        log.info(f"[WRITE] {Path(path).name}: {len(devices)} device(s) written")
    return backup


# ---------------------------------------------------------------
# Bindings (current.map)
# ---------------------------------------------------------------
def _remap_regex(remapping) -> re.Pattern:
    # Highest index first so joy10 is tried before joy1
    olds = sorted(remapping, reverse=True)
    alternation = "|".join(str(o) for o in olds)
    return re.compile(rf"\b(joy)({alternation})(?!\d)", re.IGNORECASE)


def update_joystick_references(line: str, remapping, pattern=None) -> str:
    """Replace joy<old> with joy<new> for every entry of `remapping`.

    All entries are applied in one pass, so {1: 2, 2: 1} swaps instead of
    collapsing both references into the same index."""
    if not remapping or not line or not line.strip():
        return line
    pattern = pattern or _remap_regex(remapping)

    def _sub(m):
        return f"{m.group(1)}{remapping[int(m.group(2))]}"

    return pattern.sub(_sub, line)


def update_bindings_lines(lines, remapping) -> tuple[list[str], int]:
    if not remapping:
        return list(lines), 0
    pattern = _remap_regex(remapping)
    updated = []
    changed = 0
    for line in lines:
        new = update_joystick_references(line, remapping, pattern)
        if new != line:
            changed += 1
        updated.append(new)
    return updated, changed


def read_bindings_file(path) -> list[str]:
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Bindings file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        return f.read().splitlines()


def update_bindings_file(path, remapping, log=None) -> tuple[int, object]:
    """Apply `remapping` to the bindings file. Writes (with backup) only when
    at least one line changed. Returns (changed_lines, backup_path)."""
    lines = read_bindings_file(path)

    if not remapping:
        if log:
            log.info("[WRITE] No index changes needed.")
        return 0, None

    updated, changed = update_bindings_lines(lines, remapping)
    if changed == 0:
        if log:
            log.info("[WRITE] No changes needed in bindings file.")
        return 0, None

    backup = scoped_write(path, "\n".join(updated) + "\n", log)
    if log:
        log.info(f"[WRITE] {Path(path).name}: updated {changed} line(s)")
    return changed, backup


def used_joystick_indices(path) -> set[int]:
    """Every N referenced as joy<N> in the bindings file (empty if missing)."""
    path = Path(path)
    if not path.is_file():
        return set()
    with path.open("r", encoding="utf-8") as f:
        return {int(m.group(1)) for m in JOY_REF_RE.finditer(f.read())}
