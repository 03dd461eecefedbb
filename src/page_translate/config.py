from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Callable, Dict, List

from page_translate.errors import ConfigError

LANGUAGE_NAMES: Dict[str, str] = {
    "jpn": "Japanese",
    "kor": "Korean",
    "chi_sim": "Chinese",
}

DEFAULT_API_URL = "http://localhost:5001"
DEFAULT_SOURCE_LANG = "jpn"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """
    Host-supplied configuration: generation endpoint and source language.
    """

    api_url: str = DEFAULT_API_URL
    source_lang: str = DEFAULT_SOURCE_LANG

    def validate(self) -> Settings:
        """
        Return a normalized copy, raising ConfigError on invalid values.
        """
        api_url = (self.api_url or "").strip()
        if not api_url.startswith(("http://", "https://")):
            raise ConfigError(f"Invalid URL (must start with http:// or https://): {self.api_url!r}")
        if self.source_lang not in LANGUAGE_NAMES:
            known = ", ".join(sorted(LANGUAGE_NAMES))
            raise ConfigError(f"Unknown source language {self.source_lang!r} (expected one of: {known})")
        return replace(self, api_url=api_url.rstrip("/"))

    @property
    def language_name(self) -> str:
        return LANGUAGE_NAMES[self.source_lang]


SettingsListener = Callable[[Settings], None]


class SettingsStore:
    """
    Holds the current settings and swaps them in place when the host changes them.

    Readers call `current` at the moment they need a value, so an update takes
    effect on the next translation call without touching work already running.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = (settings or Settings()).validate()
        self._listeners: List[SettingsListener] = []

    @property
    def current(self) -> Settings:
        return self._settings

    def update(self, **changes: str) -> Settings:
        unknown = set(changes) - set(asdict(self._settings))
        if unknown:
            raise ConfigError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
        new_settings = replace(self._settings, **changes).validate()
        if new_settings == self._settings:
            return new_settings
        self._settings = new_settings
        logger.info("Settings updated: api_url=%s source_lang=%s", new_settings.api_url, new_settings.source_lang)
        for listener in list(self._listeners):
            listener(new_settings)
        return new_settings

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


def load_settings(path: Path) -> Settings:
    """
    Read settings from a JSON object file with optional `api_url` / `source_lang` keys.
    """
    if not path.exists():
        raise ConfigError(f"Settings file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Settings file is not valid JSON: {path}") from exc
    if not isinstance(data, dict):
        raise ConfigError("Settings file must be a JSON object")
    known = {key: data[key] for key in ("api_url", "source_lang") if key in data}
    return Settings(**known).validate()
