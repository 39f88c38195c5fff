"""Site handlers for the downloader."""

from __future__ import annotations

from typing import Iterable, Optional

from .base import BaseSiteHandler, ChapterInfo, SiteComicContext
from .hm92 import HM92SiteHandler

DEFAULT_SITE = "92hm"

_REGISTERED_HANDLERS: Iterable[BaseSiteHandler] = (
    HM92SiteHandler(),
)


def available_sites() -> list[str]:
    return [handler.name for handler in _REGISTERED_HANDLERS]


def get_handler_by_name(name: str) -> Optional[BaseSiteHandler]:
    lowered = name.lower()
    for handler in _REGISTERED_HANDLERS:
        if handler.name == lowered:
            return handler
    return None


def get_handler_for_url(url: str) -> Optional[BaseSiteHandler]:
    for handler in _REGISTERED_HANDLERS:
        if handler.matches(url):
            return handler
    return None


__all__ = [
    "DEFAULT_SITE",
    "available_sites",
    "get_handler_by_name",
    "get_handler_for_url",
    "BaseSiteHandler",
    "ChapterInfo",
    "SiteComicContext",
]
