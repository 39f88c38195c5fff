from __future__ import annotations

from typing import Callable, List, Optional, Sequence

from bs4 import BeautifulSoup


class ImageExtractor:
    """One strategy for pulling candidate image sources out of a chapter page."""

    def candidates(self, soup: BeautifulSoup) -> List[str]:
        raise NotImplementedError


class AttributeExtractor(ImageExtractor):
    """
    Reads the first present attribute from every element matching ``selector``.

    An attribute that is present but empty ends the lookup for that element,
    so ``data-original=""`` does not fall through to ``src``. ``accept`` can
    reject sources that do not look like comic pages.
    """

    def __init__(
        self,
        selector: str,
        attributes: Sequence[str],
        accept: Optional[Callable[[str], bool]] = None,
    ) -> None:
        self.selector = selector
        self.attributes = tuple(attributes)
        self.accept = accept

    def _source(self, node) -> Optional[str]:
        for attr in self.attributes:
            value = node.get(attr)
            if value is not None:
                return value.strip()
        return None

    def candidates(self, soup: BeautifulSoup) -> List[str]:
        found: List[str] = []
        for node in soup.select(self.selector):
            src = self._source(node)
            if not src:
                continue
            if self.accept and not self.accept(src):
                continue
            found.append(src)
        return found


def first_non_empty(
    extractors: Sequence[ImageExtractor], soup: BeautifulSoup
) -> List[str]:
    """Applies ``extractors`` in order and returns the first non-empty result."""
    for extractor in extractors:
        found = extractor.candidates(soup)
        if found:
            return found
    return []


def looks_like_comic_image(
    markers: Sequence[str], suffixes: Sequence[str]
) -> Callable[[str], bool]:
    def accept(src: str) -> bool:
        return any(m in src for m in markers) or src.endswith(tuple(suffixes))

    return accept
