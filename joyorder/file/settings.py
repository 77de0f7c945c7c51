import platform

from joyorder.file.inireader import IniReader

DEFAULT_SETTINGS_FILE = "joyorder.ini"

# IL-2 writes both files into <game>/data/input
DEVICES_FILE_NAME = "devices.txt"
BINDINGS_FILE_NAME = "current.map"
APP_CONFIG_FILE_NAME = "joyorder-config.json"

DEFAULT_ALIASES = {
    "VKBsim": "VKB",
    "VPC": "Virpil",
}

KNOWN_SOURCES = ("setupapi", "oem_registry", "pygame")


def default_sources() -> list[str]:
    if platform.system().lower() == "windows":
        return ["setupapi", "oem_registry"]
    return ["pygame"]


class Settings:
    def __init__(self):
        self.devices_file_name = DEVICES_FILE_NAME
        self.bindings_file_name = BINDINGS_FILE_NAME
        self.app_config = APP_CONFIG_FILE_NAME
        # Logging
        self.logfile = "joyorder.log"
        self.console_level = "INFO"
        self.color = True
        # Device enumeration
        self.sources = default_sources()
        self.ignored_sources = []
        # Matching
        self.aliases = dict(DEFAULT_ALIASES)

    @classmethod
    def from_ini(cls, cfg: IniReader):
        obj = cls()

        obj.devices_file_name = cfg.get_str("files", "devices_file_name", obj.devices_file_name)
        obj.bindings_file_name = cfg.get_str("files", "bindings_file_name", obj.bindings_file_name)
        obj.app_config = cfg.get_str("files", "app_config", obj.app_config)

        obj.logfile = cfg.get_str("log", "logfile", obj.logfile)
        obj.console_level = cfg.get_str("log", "console_level", obj.console_level)
        obj.color = cfg.get_bool("log", "color", obj.color)

        if cfg.has("devices", "sources"):
            wanted = [s.lower() for s in cfg.get_list("devices", "sources")]
            obj.ignored_sources = [s for s in wanted if s not in KNOWN_SOURCES]
            obj.sources = [s for s in wanted if s in KNOWN_SOURCES]

        if cfg.has("matching", "aliases"):
            obj.aliases = cfg.get_pairs("matching", "aliases")

        return obj

    @classmethod
    def load(cls, path=DEFAULT_SETTINGS_FILE):
        return cls.from_ini(IniReader(path))
