from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from ..net import is_usable_page, page_title
from ..text import clean_title, cut_site_suffix
from .extractors import ImageExtractor, first_non_empty

_CHAPTER_ID = re.compile(r"[+-]?[0-9]+")


@dataclass
class ChapterInfo:
    id: str
    title: str


@dataclass
class SiteComicContext:
    title: str
    chapters: List[ChapterInfo] = field(default_factory=list)


class BaseSiteHandler:
    """Base class for site-specific handlers."""

    name: str = "base"
    domains: tuple[str, ...] = ()
    base_url: str = ""

    # Tried in order; the first one that finds anything wins.
    image_extractors: Sequence[ImageExtractor] = ()
    chapter_link_selectors: Sequence[str] = ("a[href*='/chapter/']",)
    chapter_title_selectors: Sequence[str] = ("h1",)
    error_marker: Optional[str] = None

    def matches(self, url: str) -> bool:
        netloc = urlparse(url).netloc.lower()
        return any(domain in netloc for domain in self.domains)

    @property
    def referer(self) -> str:
        return self.base_url + "/"

    # --- URLs -------------------------------------------------------------
    def chapter_url(self, chapter_id: str) -> str:
        raise NotImplementedError

    def book_url(self, book_id: str) -> str:
        raise NotImplementedError

    def normalize_url(self, src: str) -> str:
        """Turns protocol- and root-relative sources into absolute https URLs."""
        if src.startswith("//"):
            return "https:" + src
        if src.startswith("/"):
            return self.base_url + src
        return src

    # --- Page checks ------------------------------------------------------
    def is_valid_page(self, soup: BeautifulSoup) -> bool:
        return is_usable_page(soup, self.error_marker)

    # --- Images -----------------------------------------------------------
    def extract_image_urls(self, soup: BeautifulSoup) -> List[str]:
        return [
            self.normalize_url(src)
            for src in first_non_empty(self.image_extractors, soup)
        ]

    # --- Chapters ---------------------------------------------------------
    def _chapter_from_anchor(self, anchor) -> Optional[ChapterInfo]:
        href = anchor.get("href")
        if not href or "/chapter/" not in href:
            return None
        parts = href.split("/")
        if len(parts) < 3:
            return None
        chapter_id = parts[-1]
        if not _CHAPTER_ID.fullmatch(chapter_id):
            return None
        title = anchor.get_text().strip()
        return ChapterInfo(id=chapter_id, title=title or f"Chapter {chapter_id}")

    def extract_chapter_links(self, soup: BeautifulSoup) -> List[ChapterInfo]:
        """Chapters in page order, first occurrence of each id wins."""
        for selector in self.chapter_link_selectors:
            chapters: List[ChapterInfo] = []
            for anchor in soup.select(selector):
                chapter = self._chapter_from_anchor(anchor)
                if chapter is None:
                    continue
                if any(c.id == chapter.id for c in chapters):
                    continue
                chapters.append(chapter)
            if chapters:
                return chapters
        return []

    # --- Titles -----------------------------------------------------------
    def _first_text(self, soup: BeautifulSoup, selectors: Sequence[str]) -> str:
        for selector in selectors:
            node = soup.select_one(selector)
            if node:
                text = node.get_text().strip()
                if text:
                    return text
        return ""

    def _title_tag_text(self, soup: BeautifulSoup) -> str:
        return cut_site_suffix(page_title(soup))

    def extract_chapter_title(self, soup: BeautifulSoup) -> str:
        title = self._first_text(soup, self.chapter_title_selectors)
        if not title:
            title = self._title_tag_text(soup)
        return clean_title(title)

    def extract_comic_title(self, soup: BeautifulSoup) -> str:
        return clean_title(self._title_tag_text(soup))

    def build_comic_context(self, soup: BeautifulSoup) -> SiteComicContext:
        return SiteComicContext(
            title=self.extract_comic_title(soup),
            chapters=self.extract_chapter_links(soup),
        )


__all__ = [
    "BaseSiteHandler",
    "ChapterInfo",
    "SiteComicContext",
]
