#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ------------------------------------------------------------------
# Comic folder (one sub-folder per chapter)  →  single CBZ with TOC
# -----------------------------------------------------------
import argparse
import json
import os
import re
import sys
import xml.sax.saxutils
import zipfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .archive import add_file, list_images
from .log import Console

COMIC_JSON = "comic.json"
TOC_HTML = "toc.html"


@dataclass
class Chapter:
    id: str
    title: str
    dir_name: str
    image_count: int
    start_page: int = 1
    images: List[str] = field(default_factory=list, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "dir_name": self.dir_name,
            "image_count": self.image_count,
            "start_page": self.start_page,
        }


@dataclass
class ComicInfo:
    title: str
    chapters: List[Chapter] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "chapters": [c.to_dict() for c in self.chapters],
        }


# -----------------------------------------------------------
# Metadata
# -----------------------------------------------------------
def split_chapter_dir_name(name: str) -> Tuple[str, str]:
    """'007_Chapter Seven' -> ('7', 'Chapter Seven'); other names map to themselves."""
    number, sep, title = name.partition("_")
    if not sep:
        return name, name
    return number.lstrip("0") or "0", title


def _reading_order(chapter: Chapter):
    if re.fullmatch(r"[0-9]+", chapter.id):
        return (0, int(chapter.id), chapter.dir_name)
    return (1, 0, chapter.dir_name)


def get_comic_info(comic_dir: str) -> ComicInfo:
    """
    Scans ``comic_dir`` for chapter folders.

    Chapters are put in reading order before page offsets are assigned, so
    ``start_page`` is the 1-based page at which each chapter begins in the
    finished book.
    """
    info = ComicInfo(title=os.path.basename(os.path.normpath(comic_dir)))

    for name in sorted(os.listdir(comic_dir)):
        chapter_dir = os.path.join(comic_dir, name)
        if not os.path.isdir(chapter_dir):
            continue
        try:
            images = list_images(chapter_dir)
        except OSError:
            continue
        chapter_id, title = split_chapter_dir_name(name)
        info.chapters.append(
            Chapter(
                id=chapter_id,
                title=title,
                dir_name=name,
                image_count=len(images),
                images=images,
            )
        )

    info.chapters.sort(key=_reading_order)
    page = 1
    for chapter in info.chapters:
        chapter.start_page = page
        page += chapter.image_count
    return info


def build_comic_json(info: ComicInfo) -> str:
    return json.dumps(info.to_dict(), ensure_ascii=False, indent=2)


def render_toc(info: ComicInfo) -> str:
    """Static HTML table of contents linking to each chapter's first page."""
    escape = xml.sax.saxutils.escape

    items = []
    for chapter in info.chapters:
        title = escape(chapter.title)
        if chapter.images:
            href = escape(f"{chapter.dir_name}/{chapter.images[0]}", {'"': "&quot;"})
            link = f'<a href="{href}">{title}</a>'
        else:
            link = f"<span>{title}</span>"
        items.append(
            f"""        <li>
            {link}
            <div class="chapter-info">{chapter.image_count} pages, starts at page {chapter.start_page}</div>
        </li>"""
        )
    items_html = "\n".join(items)
    title = escape(info.title)

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>{title} - Contents</title>
    <style>
        body {{ font-family: Arial, sans-serif; margin: 40px; }}
        h1 {{ color: #333; }}
        ul {{ list-style-type: none; padding: 0; }}
        li {{ margin: 10px 0; padding: 10px; border: 1px solid #ddd; border-radius: 5px; }}
        a {{ text-decoration: none; color: #007bff; }}
        a:hover {{ text-decoration: underline; }}
        .chapter-info {{ color: #666; font-size: 0.9em; }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <h2>Contents</h2>
    <ul>
{items_html}
    </ul>
</body>
</html>
"""


# -----------------------------------------------------------
# Builder
# -----------------------------------------------------------
def default_output_path(comic_dir: str) -> str:
    return os.path.normpath(comic_dir) + ".cbz"


def create_ebook(comic_dir: str, out_path: Optional[str] = None) -> str:
    """Writes comic.json, toc.html and every chapter's images into one CBZ."""
    info = get_comic_info(comic_dir)
    out_path = out_path or default_output_path(comic_dir)

    with zipfile.ZipFile(out_path, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(COMIC_JSON, build_comic_json(info))
        zf.writestr(TOC_HTML, render_toc(info))
        for chapter in info.chapters:
            chapter_dir = os.path.join(comic_dir, chapter.dir_name)
            for image in chapter.images:
                add_file(zf, os.path.join(chapter_dir, image), f"{chapter.dir_name}/{image}")
    return out_path


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        "comicbox-ebook",
        description="Pack a downloaded comic (one folder per chapter) into a single CBZ "
        "with comic.json metadata and an HTML table of contents.",
    )
    p.add_argument("comic_dir", help="Comic folder, e.g. the one created by `comicbox --series`.")
    p.add_argument("-o", "--output", default=None, help="Output file (default: <comic_dir>.cbz).")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()

    if not os.path.isdir(args.comic_dir):
        console.error(f"comic directory '{args.comic_dir}' does not exist")
        return 1

    try:
        out_path = create_ebook(args.comic_dir, args.output)
    except OSError as e:
        console.error(f"Failed to create ebook: {e}")
        return 1

    console.info(f"Created ebook: {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
