import pytest

from joyorder.file.il2config import (
    DEVICES_HEADER,
    ExternalDevice,
    format_devices,
    parse_device_line,
    parse_devices,
    parse_devices_file,
    update_bindings_file,
    update_joystick_references,
    used_joystick_indices,
)


def test_parse_device_line_decodes_guid_and_model():
    dev = parse_device_line("0,%22d04d97a0-e9af-11f0-0000545345440180%22,VKBsim%20T-Rudder|")
    assert dev == ExternalDevice(0, "d04d97a0-e9af-11f0-0000545345440180", "VKBsim T-Rudder")


def test_malformed_lines_are_skipped():
    lines = [
        DEVICES_HEADER,
        "",
        "no comma here",
        "x,%22guid%22,Model",
        "2,%22only-two-fields%22",
        "1,%22abc%22,Saitek%20X52",
    ]
    assert parse_devices(lines) == [ExternalDevice(1, "abc", "Saitek X52")]


def test_parse_devices_file_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse_devices_file(tmp_path / "devices.txt")


def test_format_devices_sorts_and_encodes():
    text = format_devices([
        ExternalDevice(2, "g2", "VKB Gladiator EVO R"),
        ExternalDevice(0, "g0", "T.16000M/FCS"),
    ])
    assert text.splitlines() == [
        "configId,guid,model|",
        "0,%22g0%22,T.16000M%2FFCS",
        "2,%22g2%22,VKB%20Gladiator%20EVO%20R",
    ]
    assert "+" not in text


def test_devices_round_trip():
    devices = [
        ExternalDevice(0, "d04d97a0-e9af-11f0-0000545345440180", "VKBsim T-Rudder"),
        ExternalDevice(1, "c215046d-1a2b-3c4d-0000000000000000", "Thrustmaster T.16000M"),
        ExternalDevice(4, "0194-3344", "VPC Constellation ALPHA, Left"),
    ]
    assert parse_devices(format_devices(devices).splitlines()) == devices


def test_joy_reference_respects_word_boundary():
    assert update_joystick_references("joy10_b1 joy1_b1", {1: 9}) == "joy10_b1 joy9_b1"
    assert update_joystick_references("joy1", {1: 9}) == "joy9"
    assert update_joystick_references("xjoy1 joy11", {1: 9}) == "xjoy1 joy11"


def test_remap_swaps_instead_of_colliding():
    assert update_joystick_references("joy1 joy2", {1: 2, 2: 1}) == "joy2 joy1"
    assert update_joystick_references("joy10 joy1", {1: 10, 10: 1}) == "joy1 joy10"


def test_remap_is_case_insensitive():
    assert update_joystick_references("&fire=JOY3_b0", {3: 0}) == "&fire=JOY0_b0"


def test_update_bindings_file_counts_changed_lines(tmp_path):
    path = tmp_path / "current.map"
    path.write_text("&a=joy3_b0\n&b=joy30_b0\n&c=joy3_axis_x|joy1_b2\n", encoding="utf-8")

    changed, backup = update_bindings_file(path, {3: 0})

    assert changed == 2
    assert backup is not None and backup.read_text(encoding="utf-8").startswith("&a=joy3_b0")
    assert path.read_text(encoding="utf-8") == "&a=joy0_b0\n&b=joy30_b0\n&c=joy0_axis_x|joy1_b2\n"


def test_update_bindings_file_without_changes_does_not_write(tmp_path):
    path = tmp_path / "current.map"
    path.write_text("&a=joy3_b0\n", encoding="utf-8")
    before = path.stat().st_mtime_ns

    assert update_bindings_file(path, {}) == (0, None)
    assert update_bindings_file(path, {7: 0}) == (0, None)

    assert path.stat().st_mtime_ns == before
    assert [p.name for p in tmp_path.iterdir()] == ["current.map"]


def test_used_joystick_indices(tmp_path):
    path = tmp_path / "current.map"
    path.write_text("&a=joy0_b1\n&b=JOY12_axis_x|joy3_pov0_0\n&c=key_g\n", encoding="utf-8")
    assert used_joystick_indices(path) == {0, 3, 12}
    assert used_joystick_indices(tmp_path / "missing.map") == set()
