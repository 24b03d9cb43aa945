"""INI configuration loading with forgiving lookups."""

from __future__ import annotations

import configparser
import logging
from collections.abc import Iterator, Mapping
from pathlib import Path

from chatstatus.singleton import singleton

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.ini"


class Section:
    """Key/value pairs of one INI section; missing keys read as ""."""

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(values or {})

    def __getitem__(self, key: str) -> str:
        return self._values.get(key, "")

    def get_value(self, key: str) -> str:
        """Return the value stored under ``key`` or "" if there is none."""
        return self._values.get(key, "")

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Section):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Section({self._values!r})"


class ConfigManager:
    """All sections of a configuration; missing sections read as empty."""

    def __init__(self, sections: Mapping[str, Mapping[str, str]]) -> None:
        self._sections: dict[str, Section] = {
            name: Section(values) for name, values in sections.items()
        }

    @classmethod
    def from_file(cls, path: str | Path) -> ConfigManager:
        """Read an INI file; raises FileNotFoundError if it does not exist."""
        parser = configparser.ConfigParser(interpolation=None)
        parser.optionxform = str  # keep key case as written
        with open(path, encoding="utf-8") as handle:
            parser.read_file(handle)
        sections = {name: dict(parser.items(name)) for name in parser.sections()}
        manager = cls(sections)
        for name, section in manager._sections.items():
            logger.debug("[%s]", name)
            for key in section:
                logger.debug("%s=%s", key, section[key])
        return manager

    def __getitem__(self, section: str) -> Section:
        return self._sections.get(section, Section())

    def __contains__(self, section: object) -> bool:
        return section in self._sections

    def get_value(self, section: str, key: str) -> str:
        """Return ``key`` of ``section``, or "" if either is missing."""
        return self[section].get_value(key)

    def chat_servers(self) -> list[Section]:
        """Sections named by ``[chatservers] Name`` that carry a Name of their own."""
        names = self["chatservers"]["Name"]
        if not names:
            return []
        words = names.split(",")
        if words and words[-1] == "":
            words.pop()
        return [self[word] for word in words if self[word]["Name"]]


@singleton
def get_config() -> ConfigManager:
    """The process-wide configuration, read from config.ini in the working directory."""
    path = Path.cwd() / CONFIG_FILE_NAME
    logger.info("Config path: %s", path)
    return ConfigManager.from_file(path)