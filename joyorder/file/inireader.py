import configparser
import re
from pathlib import Path


class IniReader:
    """Thin typed wrapper around ConfigParser. A missing file reads as empty."""

    def __init__(self, path=None):
        self.path = Path(path) if path else None
        self.cfg = configparser.ConfigParser(inline_comment_prefixes=(";", "#"),
                                             interpolation=None)
        self.cfg.optionxform = str  # preserve case
        if self.path is not None and self.path.is_file():
            self.cfg.read(self.path, encoding="utf-8")

    @property
    def loaded(self) -> bool:
        return bool(self.cfg.sections())

    def _clean(self, val: str) -> str:
        if val is None:
            return ""
        # cut at first ; or #
        for sep in (";", "#"):
            if sep in val:
                val = val.split(sep, 1)[0]
        return val.strip().strip('"').strip("'")

    def has(self, section: str, option: str) -> bool:
        return self.cfg.has_option(section, option)

    def get_str(self, section: str, option: str, fallback: str = "") -> str:
        if self.cfg.has_option(section, option):
            val = self._clean(self.cfg.get(section, option, fallback=fallback))
            return val or fallback
        return fallback

    def get_int(self, section: str, option: str, fallback: int = 0) -> int:
        try:
            return int(self.get_str(section, option, str(fallback)))
        except ValueError:
            return fallback

    def get_bool(self, section: str, option: str, fallback: bool = False) -> bool:
        val = self.get_str(section, option, str(fallback))
        return val.lower() in ("1", "yes", "true", "on")

    def get_list(self, section: str, option: str) -> list[str]:
        if not self.cfg.has_option(section, option):
            return []
        raw = self._clean(self.cfg.get(section, option, fallback=""))
        # commas or newlines (multi-line values)
        tokens = re.split(r"[,\n]", raw)
        return [t.strip() for t in tokens if t.strip()]

    def get_pairs(self, section: str, option: str) -> dict[str, str]:
        """'A=B, C=D' -> {'A': 'B', 'C': 'D'}; entries without '=' are skipped."""
        pairs = {}
        for token in self.get_list(section, option):
            if "=" not in token:
                continue
            lhs, rhs = [x.strip() for x in token.split("=", 1)]
            if lhs:
                pairs[lhs] = rhs
        return pairs
