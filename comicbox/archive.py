from __future__ import annotations

import os
import shutil
import xml.sax.saxutils
import zipfile
from typing import List

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif")


def is_image(name: str) -> bool:
    return name.lower().endswith(IMAGE_EXTENSIONS)


def list_images(directory: str) -> List[str]:
    """
    Image file names in ``directory``, sorted by name.

    The sort is plain lexicographic and defines the reading order, which is
    why pages are saved with zero-padded numbers.
    """
    with os.scandir(directory) as entries:
        names = [e.name for e in entries if not e.is_dir() and is_image(e.name)]
    return sorted(names)


def add_file(zf: zipfile.ZipFile, path: str, arcname: str) -> None:
    """Streams ``path`` into ``zf`` with a header built from the file's own stat."""
    info = zipfile.ZipInfo.from_file(path, arcname, strict_timestamps=False)
    with open(path, "rb") as src, zf.open(info, "w") as dst:
        shutil.copyfileobj(src, dst, 1024 * 1024)


def build_comic_info_xml(title: str, page_count: int) -> str:
    """Generates the ComicInfo.xml string for CBZ files."""

    def escape(s):
        return xml.sax.saxutils.escape(s) if s else ""

    return f'''<?xml version="1.0" encoding="utf-8"?>
<ComicInfo xmlns:xsd="http://www.w3.org/2001/XMLSchema" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">
    <Title>{escape(title)}</Title>
    <Series>{escape(title)}</Series>
    <PageCount>{page_count}</PageCount>
</ComicInfo>
'''
