from __future__ import annotations

from bs4 import BeautifulSoup

from ..net import ERROR_PAGE_MARKER
from ..text import clean_title
from .base import BaseSiteHandler
from .extractors import AttributeExtractor, looks_like_comic_image

# Path fragments used by the site's image hosts.
_IMAGE_MARKERS = ("upload", "book", "imgBridge", "imgs", "comic")
_IMAGE_SUFFIXES = (".jpg", ".png", ".jpeg")


class HM92SiteHandler(BaseSiteHandler):
    name = "92hm"
    domains = ("92hm.life", "www.92hm.life")
    base_url = "https://www.92hm.life"

    image_extractors = (
        # Lazy-loaded reader pages keep the real source in data-original.
        AttributeExtractor("img.lazy", ("data-original",)),
        AttributeExtractor(
            "img",
            ("data-original", "data-src", "src"),
            accept=looks_like_comic_image(_IMAGE_MARKERS, _IMAGE_SUFFIXES),
        ),
        AttributeExtractor("div.cropped", ("data-src", "src")),
    )
    chapter_link_selectors = ("a[href*='/chapter/']", ".chapter-item a")
    chapter_title_selectors = ("h1", ".chapter-title")
    error_marker = ERROR_PAGE_MARKER

    def chapter_url(self, chapter_id: str) -> str:
        return f"{self.base_url}/chapter/{chapter_id}"

    def book_url(self, book_id: str) -> str:
        return f"{self.base_url}/book/{book_id}"

    def extract_comic_title(self, soup: BeautifulSoup) -> str:
        title = self._first_text(soup, (".comic-name",))
        if not title:
            crumbs = soup.select(".crumbs a")
            if len(crumbs) > 1:
                title = crumbs[1].get_text().strip()
        if not title:
            title = self._first_text(soup, ("h1", ".comic-title"))
        if not title:
            title = self._title_tag_text(soup)
        return clean_title(title)
