#!/usr/bin/env python3
"""
sources.py - Device sources feeding the IdentityResolver

SetupApiSource    Windows SetupAPI, present HID device interfaces (ctypes)
OemRegistrySource HKCU joystick OEM registry names (winreg, enrichment only)
PygameSource      pygame/SDL joysticks; VID/PID decoded from the SDL GUID
"""

import ctypes
import platform
import uuid

import pygame

from joyorder.controller.devices import IdentityResolver, RawDescriptor

GUID_DEVINTERFACE_HID = "4D1E55B2-F16F-11CF-88CB-001111000030"

DIGCF_PRESENT = 0x02
DIGCF_DEVICEINTERFACE = 0x10
SPDRP_DEVICEDESC = 0x00
SPDRP_HARDWAREID = 0x01

OEM_REGISTRY_PATH = r"System\CurrentControlSet\Control\MediaProperties\PrivateProperties\Joystick\OEM"


def is_windows() -> bool:
    return platform.system().lower() == "windows"


# ===== SetupAPI =====
class GUID(ctypes.Structure):
    _fields_ = [
        ("Data1", ctypes.c_ulong),
        ("Data2", ctypes.c_ushort),
        ("Data3", ctypes.c_ushort),
        ("Data4", ctypes.c_ubyte * 8),
    ]

    @classmethod
    def from_string(cls, s: str):
        u = uuid.UUID(s)
        g = cls()
        g.Data1, g.Data2, g.Data3 = u.fields[0], u.fields[1], u.fields[2]
        g.Data4[:] = list(u.bytes[8:])
        return g


class SP_DEVINFO_DATA(ctypes.Structure):
    _fields_ = [
        ("cbSize", ctypes.c_ulong),
        ("ClassGuid", GUID),
        ("DevInst", ctypes.c_ulong),
        ("Reserved", ctypes.c_void_p),
    ]


class SetupApiSource:
    name = "setupapi"

    def __init__(self):
        self._api = None

    def _load(self):
        if self._api is not None:
            return self._api
        import ctypes.wintypes as wt
        api = ctypes.WinDLL("setupapi", use_last_error=True)

        api.SetupDiGetClassDevsW.restype = ctypes.c_void_p
        api.SetupDiGetClassDevsW.argtypes = [
            ctypes.POINTER(GUID), wt.LPCWSTR, wt.HWND, wt.DWORD]

        api.SetupDiEnumDeviceInfo.restype = wt.BOOL
        api.SetupDiEnumDeviceInfo.argtypes = [
            ctypes.c_void_p, wt.DWORD, ctypes.POINTER(SP_DEVINFO_DATA)]

        api.SetupDiGetDeviceRegistryPropertyW.restype = wt.BOOL
        api.SetupDiGetDeviceRegistryPropertyW.argtypes = [
            ctypes.c_void_p, ctypes.POINTER(SP_DEVINFO_DATA), wt.DWORD,
            ctypes.POINTER(wt.DWORD), ctypes.c_void_p, wt.DWORD,
            ctypes.POINTER(wt.DWORD)]

        api.SetupDiDestroyDeviceInfoList.restype = wt.BOOL
        api.SetupDiDestroyDeviceInfoList.argtypes = [ctypes.c_void_p]

        self._api = api
        return api

    def _registry_property(self, api, hset, info, prop):
        import ctypes.wintypes as wt
        reg_type = wt.DWORD(0)
        required = wt.DWORD(0)
        # First call only reports the buffer size
        api.SetupDiGetDeviceRegistryPropertyW(
            hset, ctypes.byref(info), prop, ctypes.byref(reg_type),
            None, 0, ctypes.byref(required))
        if required.value == 0:
            return None

        buf = ctypes.create_string_buffer(required.value)
        ok = api.SetupDiGetDeviceRegistryPropertyW(
            hset, ctypes.byref(info), prop, ctypes.byref(reg_type),
            buf, required.value, ctypes.byref(required))
        if not ok:
            return None
        # REG_MULTI_SZ (hardware ids): keep the first string
        text = buf.raw.decode("utf-16-le", errors="ignore")
        return text.split("\0", 1)[0] or None

    def enumerate(self) -> list[RawDescriptor]:
        if not is_windows():
            return []
        api = self._load()
        hid_guid = GUID.from_string(GUID_DEVINTERFACE_HID)
        hset = api.SetupDiGetClassDevsW(
            ctypes.byref(hid_guid), None, None, DIGCF_PRESENT | DIGCF_DEVICEINTERFACE)
        if not hset or hset == ctypes.c_void_p(-1).value:
            return []

        found = []
        try:
            info = SP_DEVINFO_DATA()
            info.cbSize = ctypes.sizeof(SP_DEVINFO_DATA)
            idx = 0
            while api.SetupDiEnumDeviceInfo(hset, idx, ctypes.byref(info)):
                idx += 1
                hardware_id = self._registry_property(api, hset, info, SPDRP_HARDWAREID)
                if not hardware_id:
                    continue
                desc = self._registry_property(api, hset, info, SPDRP_DEVICEDESC)
                found.append(RawDescriptor(desc or "Unknown Device", hardware_id, hardware_id))
        finally:
            api.SetupDiDestroyDeviceInfoList(hset)
        return found


# ===== OEM registry =====
class OemRegistrySource:
    name = "oem_registry"

    def __init__(self, log=None):
        self.log = log

    def enumerate(self) -> list[RawDescriptor]:
        if not is_windows():
            return []
        import winreg

        found = []
        try:
            oem = winreg.OpenKey(winreg.HKEY_CURRENT_USER, OEM_REGISTRY_PATH)
        except FileNotFoundError:
            return []

        with oem:
            i = 0
            while True:
                try:
                    key_name = winreg.EnumKey(oem, i)
                except OSError:
                    break  # no more subkeys
                i += 1
                try:
                    with winreg.OpenKey(oem, key_name) as sub:
                        oem_name, _ = winreg.QueryValueEx(sub, "OEMName")
                except OSError as e:
                    if self.log:
                        self.log.debug(f"[SCAN] OEM key {key_name} skipped: {e}")
                    continue
                if oem_name:
                    found.append(RawDescriptor(str(oem_name), key_name, key_name))
        return found


# ===== pygame / SDL =====
def vid_pid_from_sdl_guid(guid: str):
    """SDL2 joystick GUID -> (VID, PID) upper-case hex, or (None, None).

    Layout (little endian words): bus, crc, vendor, 0, product, 0, version, ...
    Devices without USB ids get a name-based GUID; those return (None, None)."""
    guid = (guid or "").strip().lower()
    if len(guid) != 32:
        return None, None
    if guid[12:16] != "0000" or guid[20:24] != "0000":
        return None, None
    vid = guid[10:12] + guid[8:10]
    pid = guid[18:20] + guid[16:18]
    if vid == "0000":
        return None, None
    return vid.upper(), pid.upper()


class PygameSource:
    name = "pygame"

    def enumerate(self) -> list[RawDescriptor]:
        pygame.init()
        pygame.joystick.init()
        found = []
        try:
            for i in range(pygame.joystick.get_count()):
                js = pygame.joystick.Joystick(i)
                try:
                    guid = js.get_guid()
                except AttributeError:
                    guid = ""
                vid, pid = vid_pid_from_sdl_guid(guid)
                if not vid or not pid:
                    continue
                found.append(RawDescriptor(
                    js.get_name(),
                    f"VID_{vid}&PID_{pid}",
                    f"pygame:{i}:{guid}",
                ))
        finally:
            pygame.joystick.quit()
        return found


def build_resolver(log, settings) -> IdentityResolver:
    primary, enrichment = [], []
    for name in settings.sources:
        if name == "setupapi":
            primary.append(SetupApiSource())
        elif name == "pygame":
            primary.append(PygameSource())
        elif name == "oem_registry":
            enrichment.append(OemRegistrySource(log))
    return IdentityResolver(log, primary, enrichment)
