#!/usr/bin/env python3
"""
devices.py - Turns raw OS device descriptors into stable joystick identities

- Primary sources list attached HID devices (name + hardware id string).
- VID/PID are pulled out of the hardware id (VID_231D&PID_0200 ...).
- Only names that look like game controllers are kept.
- One device per VID:PID (first seen wins).
- Enrichment sources (Windows OEM joystick registry) may replace a generic
  "HID-compliant ..." name, or add a device the primary pass missed.
"""

import re
import zlib
from dataclasses import dataclass
from typing import Optional, Protocol

VID_RE = re.compile(r"VID[_&]([0-9A-F]{4})", re.IGNORECASE)
PID_RE = re.compile(r"PID[_&]([0-9A-F]{4})", re.IGNORECASE)

# Checked first: any hit rejects the device
EXCLUDE_KEYWORDS = (
    "keyboard", "mouse", "touchpad", "hub", "host controller",
    "card reader", "camera", "audio", "microphone", "speaker",
    "storage", "disk", "bluetooth", "wireless adapter", "network",
    "monitor", "display", "printer", "virtual", "root",
    "system controller", "consumer control", "vendor-defined",
)

# Then at least one of these must be present
INCLUDE_KEYWORDS = (
    "joystick", "gamepad", "game controller", "throttle", "rudder",
    "stick", "hotas", "vkb", "virpil", "thrustmaster", "saitek",
    "t.16000", "t16000", "warthog", "cougar", "x52", "x55", "x56",
    "gunfighter", "gladiator", "ch pro", "pedals", "mfg", "crosswind",
    "flight stick", "flight controller",
)

PLACEHOLDER_NAME_TOKENS = ("hid", "unknown")


@dataclass
class RawDescriptor:
    """What a DeviceSource reports for one device."""
    name: str
    hardware_id: str
    instance_id: str = ""


@dataclass
class DeviceIdentity:
    instance_id: str
    guid: str
    name: str
    vendor_id: Optional[str] = None
    product_id: Optional[str] = None

    @property
    def vid_pid_key(self) -> str:
        return f"{self.vendor_id or '0000'}:{self.product_id or '0000'}".lower()

    @property
    def stable_key(self) -> str:
        return f"VIDPID:{self.vendor_id or '0000'}:{self.product_id or '0000'}:{self.name}"

    def __str__(self):
        return (f"{self.name} (GUID: {self.guid}, VID: {self.vendor_id}, "
                f"PID: {self.product_id})")


class DeviceSource(Protocol):
    name: str

    def enumerate(self) -> list[RawDescriptor]:
        ...


class StaticDeviceSource:
    """In-memory source (tests, dry runs)."""

    def __init__(self, descriptors=None, name: str = "static"):
        self.name = name
        self.descriptors = list(descriptors or [])

    def enumerate(self) -> list[RawDescriptor]:
        return list(self.descriptors)


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------
def extract_vid(text: str) -> Optional[str]:
    m = VID_RE.search(text or "")
    return m.group(1).upper() if m else None


def extract_pid(text: str) -> Optional[str]:
    m = PID_RE.search(text or "")
    return m.group(1).upper() if m else None


def is_game_controller(name: str) -> bool:
    if not name:
        return False
    lower = name.lower()
    if any(k in lower for k in EXCLUDE_KEYWORDS):
        return False
    return any(k in lower for k in INCLUDE_KEYWORDS)


def is_placeholder_name(name: str) -> bool:
    lower = (name or "").lower()
    return any(t in lower for t in PLACEHOLDER_NAME_TOKENS)


def stable_hash(text: str) -> int:
    """Signed 32-bit CRC-32; identical in every process (unlike hash())."""
    h = zlib.crc32(text.encode("utf-8"))
    return h - (1 << 32) if h >= (1 << 31) else h


def derive_guid(vendor_id: Optional[str], product_id: Optional[str], device_id: str) -> str:
    """IL-2 style GUID: <pid><vid>-xxxx-xxxx-0000000000000000.

    Best-effort stand-in only; IL-2 derives its own GUIDs differently."""
    vid = (vendor_id or "0000").lower().rjust(4, "0")
    pid = (product_id or "0000").lower().rjust(4, "0")
    h = f"{abs(stable_hash(device_id or '')):08x}"
    return f"{pid}{vid}-{h[0:4]}-{h[4:8]}-0000000000000000"


# ---------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------
class IdentityResolver:
    def __init__(self, log, primary_sources=(), enrichment_sources=()):
        self.log = log
        self.primary_sources = list(primary_sources)
        self.enrichment_sources = list(enrichment_sources)

    def _collect(self, source) -> list[RawDescriptor]:
        try:
            found = list(source.enumerate())
        except Exception as e:
            self.log.warning(f"[SCAN] Source '{getattr(source, 'name', source)}' unavailable: {e}")
            return []
        self.log.debug(f"[SCAN] Source '{getattr(source, 'name', source)}' reported {len(found)} device(s)")
        return found

    def resolve(self) -> list[DeviceIdentity]:
        devices: list[DeviceIdentity] = []
        seen: set[str] = set()

        for source in self.primary_sources:
            for raw in self._collect(source):
                self._add_primary(raw, devices, seen)

        for source in self.enrichment_sources:
            for raw in self._collect(source):
                self._enrich(raw, devices, seen)

        for dev in devices:
            self.log.debug(f"[DEVICE] {dev} instance={dev.instance_id}")
        return devices

    def _add_primary(self, raw, devices, seen):
        vid = extract_vid(raw.hardware_id)
        pid = extract_pid(raw.hardware_id)
        if not vid or not pid:
            return
        name = raw.name or "Unknown Device"
        if not is_game_controller(name):
            self.log.debug(f"[SCAN] Skipping non-controller: {name} ({vid}:{pid})")
            return
        key = f"{vid}:{pid}".lower()
        if key in seen:
            return
        seen.add(key)
        devices.append(DeviceIdentity(
            instance_id=raw.instance_id or raw.hardware_id,
            guid=derive_guid(vid, pid, raw.hardware_id),
            name=name,
            vendor_id=vid,
            product_id=pid,
        ))

    def _enrich(self, raw, devices, seen):
        if not raw.name:
            return
        vid = extract_vid(raw.hardware_id)
        pid = extract_pid(raw.hardware_id)
        if not vid or not pid:
            return

        existing = next((d for d in devices
                         if (d.vendor_id or "").upper() == vid
                         and (d.product_id or "").upper() == pid), None)
        if existing is not None:
            if is_placeholder_name(existing.name):
                self.log.debug(f"[SCAN] Renaming '{existing.name}' -> '{raw.name}'")
                existing.name = raw.name
            return

        key = f"{vid}:{pid}".lower()
        if key in seen:
            return
        seen.add(key)
        devices.append(DeviceIdentity(
            instance_id=raw.instance_id or raw.hardware_id,
            guid=derive_guid(vid, pid, raw.hardware_id),
            name=raw.name,
            vendor_id=vid,
            product_id=pid,
        ))
