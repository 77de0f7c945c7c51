import json

import pytest

from joyorder.file.appconfig import AppConfig, AppConfigStore, ConfigError, DeviceMapping


def test_store_round_trip(tmp_path):
    store = AppConfigStore(tmp_path / "joyorder-config.json")
    assert not store.exists()
    assert store.load() is None

    config = AppConfig("C:/IL-2/input/devices.txt", "C:/IL-2/input/current.map", [
        DeviceMapping("VIDPID:231D:0200:VKB Gladiator EVO", "VKBsim Gladiator EVO", 2, "g"),
    ])
    store.save(config)

    assert store.exists()
    assert store.load() == config
    data = json.loads(store.path.read_text(encoding="utf-8"))
    assert data["DeviceMappings"][0]["ExpectedIndex"] == 2


def test_load_accepts_any_key_case(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({
        "devicesFilePath": "d.txt",
        "BINDINGSFILEPATH": "b.map",
        "deviceMappings": [{"uniqueIdentifier": "id", "name": "Stick", "expectedIndex": 1}],
    }), encoding="utf-8")

    config = AppConfigStore(path).load()

    assert config.bindings_file_path == "b.map"
    assert config.device_mappings == [DeviceMapping("id", "Stick", 1, "")]


@pytest.mark.parametrize("content", [
    "{not json",
    json.dumps({"DevicesFilePath": "d.txt"}),
    json.dumps({"DevicesFilePath": "d", "BindingsFilePath": "b",
                "DeviceMappings": [{"Name": "no id"}]}),
    json.dumps({"DevicesFilePath": "d", "BindingsFilePath": "b",
                "DeviceMappings": [{"UniqueIdentifier": "id", "Name": "no index"}]}),
    json.dumps({"DevicesFilePath": "d", "BindingsFilePath": "b",
                "DeviceMappings": [{"UniqueIdentifier": "id", "Name": "S", "ExpectedIndex": -1}]}),
    json.dumps({"DevicesFilePath": "d", "BindingsFilePath": "b",
                "DeviceMappings": [{"UniqueIdentifier": "id", "Name": "S", "ExpectedIndex": "2"}]}),
    json.dumps({"DevicesFilePath": "d", "BindingsFilePath": "b", "DeviceMappings": [1]}),
    json.dumps({"DevicesFilePath": "d", "BindingsFilePath": "b", "DeviceMappings": {"a": 1}}),
])
def test_load_rejects_broken_config(tmp_path, content):
    path = tmp_path / "cfg.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(ConfigError):
        AppConfigStore(path).load()
