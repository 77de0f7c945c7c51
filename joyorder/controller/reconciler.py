#!/usr/bin/env python3
"""
reconciler.py - Brings IL-2's joystick indices back in line with the saved mapping

Run:
    LOADED            both IL-2 files exist
    DEVICES_VERIFIED  every saved mapping has exactly one connected device
    MAPPINGS_CHECKED  each matched device located in devices.txt
    INDICES_COMPUTED  old index -> expected index table built
    APPLIED           devices.txt rewritten, then current.map (backup first, each)
    NO_OP_NEEDED      nothing to change, nothing written

Any verification problem aborts the run before a single byte is written; all
problems are reported together so they can be fixed in one go.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from joyorder.controller.devices import DeviceIdentity
from joyorder.controller.matcher import MatchTier, best_match
from joyorder.file.appconfig import AppConfig, DeviceMapping
from joyorder.file.il2config import (
    ExternalDevice,
    parse_devices_file,
    update_bindings_file,
    write_devices_file,
)


class ReconcileState(Enum):
    LOADED = "loaded"
    DEVICES_VERIFIED = "devices_verified"
    MAPPINGS_CHECKED = "mappings_checked"
    INDICES_COMPUTED = "indices_computed"
    APPLIED = "applied"
    NO_OP_NEEDED = "no_op_needed"


class DeviceMatchError(Exception):
    """One or more saved mappings can't be satisfied by the connected devices."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__(f"{len(self.errors)} device error(s): " + "; ".join(self.errors))


@dataclass
class IndexMove:
    mapping: DeviceMapping
    record: ExternalDevice

    @property
    def old_index(self) -> int:
        return self.record.index

    @property
    def new_index(self) -> int:
        return self.mapping.expected_index


@dataclass
class ReconcileReport:
    state: ReconcileState = ReconcileState.LOADED
    matched: list = field(default_factory=list)     # [(DeviceMapping, DeviceIdentity)]
    warnings: list[str] = field(default_factory=list)
    remapping: dict[int, int] = field(default_factory=dict)
    moves: list[IndexMove] = field(default_factory=list)
    devices: list[ExternalDevice] = field(default_factory=list)  # rebuilt devices.txt
    bindings_changed: int = 0
    backups: list[Path] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.state is ReconcileState.APPLIED


class Reconciler:
    def __init__(self, log, app_config: AppConfig, aliases=None):
        self.log = log
        self.config = app_config
        self.aliases = aliases

    # ------------------------------------------------------------------
    # LOADED
    # ------------------------------------------------------------------
    def check_files(self):
        devices = Path(self.config.devices_file_path)
        bindings = Path(self.config.bindings_file_path)
        if not devices.is_file():
            raise FileNotFoundError(f"IL-2 devices file not found: {devices}")
        if not bindings.is_file():
            raise FileNotFoundError(f"IL-2 bindings file not found: {bindings}")

    # ------------------------------------------------------------------
    # DEVICES_VERIFIED
    # ------------------------------------------------------------------
    def verify_devices(self, connected: list[DeviceIdentity]):
        """Pair every saved mapping with a connected device (exact unique id).

        Raises DeviceMatchError listing every missing device, every device
        claimed twice and every expected index used twice."""
        errors = []
        matched = []
        by_device = defaultdict(list)

        for mapping in self.config.device_mappings:
            device = next((d for d in connected
                           if d.stable_key == mapping.unique_identifier), None)
            if device is None:
                errors.append(
                    f"Device not found: [joy{mapping.expected_index}] {mapping.name} "
                    f"(ID: {mapping.unique_identifier})")
                continue
            self.log.info(f"[MATCH] Found: [joy{mapping.expected_index}] {mapping.name}")
            matched.append((mapping, device))
            by_device[device.stable_key].append(mapping)

        for key, mappings in by_device.items():
            if len(mappings) > 1:
                idx = ", ".join(f"joy{m.expected_index}" for m in mappings)
                errors.append(f"Duplicate device mapping: {mappings[0].name} is mapped "
                              f"multiple times ({idx})")

        by_index = defaultdict(list)
        for mapping in self.config.device_mappings:
            if mapping.expected_index < 0:
                errors.append(f"Invalid expected index joy{mapping.expected_index}: {mapping.name}")
                continue
            by_index[mapping.expected_index].append(mapping)
        for index, mappings in sorted(by_index.items()):
            if len(mappings) > 1:
                names = ", ".join(m.name for m in mappings)
                errors.append(f"Duplicate expected index joy{index}: {names}")

        if errors:
            raise DeviceMatchError(errors)
        return matched

    # ------------------------------------------------------------------
    # MAPPINGS_CHECKED / INDICES_COMPUTED
    # ------------------------------------------------------------------
    def find_record(self, mapping: DeviceMapping, external: list[ExternalDevice]):
        return best_match(
            mapping.name, external, name_of=lambda r: r.model,
            target_id=mapping.guid, id_of=lambda r: r.guid,
            aliases=self.aliases, fuzzy=False,
        )

    def compute_remapping(self, matched, external: list[ExternalDevice], report: ReconcileReport):
        claimed: dict[int, DeviceMapping] = {}

        for mapping, _device in matched:
            result = self.find_record(mapping, external)
            if result.tier is MatchTier.NO_MATCH:
                report.warnings.append(
                    f"Device {mapping.name} not found in IL-2 devices.txt - may need to re-init")
                continue

            record = result.candidate
            other = claimed.get(record.index)
            if other is not None:
                report.warnings.append(
                    f"{mapping.name} and {other.name} both resolve to joy{record.index} "
                    f"({record.model}); skipping {mapping.name}")
                continue
            claimed[record.index] = mapping

            if record.index == mapping.expected_index:
                self.log.info(f"[MATCH] {mapping.name} - joy{record.index} (OK, {result.tier.value})")
                continue

            self.log.info(f"[REMAP] {mapping.name}: joy{record.index} -> joy{mapping.expected_index}")
            report.remapping[record.index] = mapping.expected_index
            report.moves.append(IndexMove(mapping, record))

    def rebuild_device_list(self, external: list[ExternalDevice], moves: list[IndexMove]):
        """Moved devices at their new index first, then every untouched record
        whose index is still free."""
        updated = []
        used = set()
        for mv in moves:
            updated.append(ExternalDevice(mv.new_index, mv.record.guid, mv.record.model))
            used.add(mv.new_index)

        moved_from = {mv.old_index for mv in moves}
        for dev in external:
            if dev.index in moved_from:
                continue
            if dev.index in used:
                self.log.warning(f"[REMAP] {dev} dropped: joy{dev.index} is taken by a moved device")
                continue
            updated.append(dev)
            used.add(dev.index)
        return sorted(updated, key=lambda d: d.index)

    # ------------------------------------------------------------------
    # APPLIED
    # ------------------------------------------------------------------
    def apply(self, report: ReconcileReport):
        self.log.info(f"[WRITE] {len(report.remapping)} index change(s) required")
        backup = write_devices_file(self.config.devices_file_path, report.devices, self.log)
        if backup:
            report.backups.append(backup)
        changed, backup = update_bindings_file(
            self.config.bindings_file_path, report.remapping, self.log)
        report.bindings_changed = changed
        if backup:
            report.backups.append(backup)
        report.state = ReconcileState.APPLIED

    def run(self, connected: list[DeviceIdentity], dry_run: bool = False) -> ReconcileReport:
        report = ReconcileReport()
        self.check_files()
        report.matched = self.verify_devices(connected)
        report.state = ReconcileState.DEVICES_VERIFIED

        external = parse_devices_file(self.config.devices_file_path)
        self.log.debug(f"[LOAD] {len(external)} device(s) in devices.txt")
        self.compute_remapping(report.matched, external, report)
        report.state = ReconcileState.MAPPINGS_CHECKED
        for w in report.warnings:
            self.log.warning(f"[MATCH] {w}")

        if not report.remapping:
            report.state = ReconcileState.NO_OP_NEEDED
            self.log.info("[DONE] All devices are correctly configured. No changes needed.")
            return report

        report.devices = self.rebuild_device_list(external, report.moves)
        report.state = ReconcileState.INDICES_COMPUTED
        if dry_run:
            self.log.info("[DRY-RUN] No files written.")
            return report

        self.apply(report)
        self.log.info("[DONE] Configuration updated successfully.")
        return report
