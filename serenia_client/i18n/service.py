"""JSON message catalogs keyed by language."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from serenia_client.logging import logger


def normalize_locale(locale: str) -> str:
    """Reduce a language tag such as ``fr-FR`` or ``en_US`` to its language."""

    return locale.replace("_", "-").split("-", 1)[0].strip().lower()


class I18nService:
    def __init__(self, *, locales_path: str | Path | None = None, default_locale: str = "fr") -> None:
        self.locales_path = Path(locales_path or Path(__file__).with_name("locales"))
        self.default_locale = normalize_locale(default_locale)
        self._catalogs: dict[str, dict[str, str]] = {}

    def available_locales(self) -> list[str]:
        return sorted(path.stem for path in self.locales_path.glob("*.json"))

    def gettext(self, key: str, *, locale: str | None = None, **kwargs: Any) -> str:
        loc = normalize_locale(locale or self.default_locale)
        text = self._catalog(loc).get(key)
        if text is None and loc != self.default_locale:
            text = self._catalog(self.default_locale).get(key)
        if text is None:
            logger.debug("i18n_key_missing", key=key, locale=loc)
            text = key
        return text.format(**kwargs) if kwargs else text

    def _catalog(self, locale: str) -> dict[str, str]:
        if locale not in self._catalogs:
            file_path = self.locales_path / f"{locale}.json"
            if file_path.exists():
                with file_path.open("r", encoding="utf-8") as fp:
                    self._catalogs[locale] = json.load(fp)
            else:
                self._catalogs[locale] = {}
        return self._catalogs[locale]


__all__ = ["I18nService", "normalize_locale"]
