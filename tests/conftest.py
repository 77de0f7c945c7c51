import logging

import pytest

from joyorder.controller.devices import DeviceIdentity, derive_guid
from joyorder.file.appconfig import AppConfig, DeviceMapping

T16000_GUID = "c215046d-1a2b-3c4d-0000000000000000"
RUDDER_GUID = "d04d97a0-e9af-11f0-0000545345440180"

DEVICES_TXT = (
    "configId,guid,model|\n"
    f"1,%22{RUDDER_GUID}%22,VKBsim%20T-Rudder\n"
    f"3,%22{T16000_GUID}%22,ThrustmasterT16000\n"
)

BINDINGS_TXT = (
    "&actionPitch=joy3_axis_y\n"
    "&actionFire=joy3_b0|joy1_b2\n"
    "&actionRudder=joy1_axis_z\n"
    "&actionFlaps=joy30_b1\n"
    "&actionGear=key_g\n"
)


def make_device(name, vid, pid, instance="HID\\VID_{vid}&PID_{pid}\\1"):
    instance = instance.format(vid=vid, pid=pid)
    return DeviceIdentity(instance, derive_guid(vid, pid, instance), name, vid, pid)


@pytest.fixture
def log():
    logger = logging.getLogger("joyorder.test")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def t16000():
    return make_device("ThrustmasterT16000", "046D", "C215")


@pytest.fixture
def rudder():
    return make_device("VKB T-Rudder", "231D", "011F")


@pytest.fixture
def il2_folder(tmp_path):
    folder = tmp_path / "input"
    folder.mkdir()
    (folder / "devices.txt").write_text(DEVICES_TXT, encoding="utf-8")
    (folder / "current.map").write_text(BINDINGS_TXT, encoding="utf-8")
    return folder


@pytest.fixture
def app_config(il2_folder, t16000, rudder):
    return AppConfig(
        devices_file_path=str(il2_folder / "devices.txt"),
        bindings_file_path=str(il2_folder / "current.map"),
        device_mappings=[
            DeviceMapping(t16000.stable_key, "ThrustmasterT16000", 0, T16000_GUID),
            DeviceMapping(rudder.stable_key, "VKBsim T-Rudder", 1, RUDDER_GUID),
        ],
    )


def snapshot(folder):
    """{name: (bytes, mtime_ns)} for every file in `folder`."""
    return {p.name: (p.read_bytes(), p.stat().st_mtime_ns) for p in sorted(folder.iterdir())}
