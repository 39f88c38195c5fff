#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ------------------------------------------------------------------
# Chapter folder  →  CBZ
# -----------------------------------------------------------
import argparse
import glob
import os
import sys
import zipfile
from typing import List, Optional

from .archive import add_file, build_comic_info_xml, list_images
from .log import Console


class PackError(RuntimeError):
    pass


def is_pattern(target: str) -> bool:
    return "*" in target or "?" in target


def pack_chapter(chapter_dir: str, output_dir: str = ".", comic_info: bool = False) -> str:
    """Packs the images of one chapter folder into ``<output_dir>/<folder>.cbz``."""
    if not os.path.isdir(chapter_dir):
        raise PackError(f"chapter directory does not exist: {chapter_dir}")
    os.makedirs(output_dir, exist_ok=True)

    name = os.path.basename(os.path.normpath(chapter_dir))
    out_path = os.path.join(output_dir, name + ".cbz")
    images = list_images(chapter_dir)

    with zipfile.ZipFile(out_path, "w", zipfile.ZIP_DEFLATED) as zf:
        for image in images:
            add_file(zf, os.path.join(chapter_dir, image), image)
        if comic_info:
            zf.writestr("ComicInfo.xml", build_comic_info_xml(name, len(images)))
    return out_path


def expand_targets(targets: List[str]) -> List[str]:
    """Glob patterns become the directories they match; plain paths pass through."""
    expanded: List[str] = []
    for target in targets:
        if is_pattern(target):
            expanded.extend(m for m in sorted(glob.glob(target)) if os.path.isdir(m))
        else:
            expanded.append(target)
    return expanded


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        "comicbox-pack",
        description="Pack downloaded chapter folders into CBZ files.",
        epilog="examples:\n"
        "  comicbox-pack chapter_16124\n"
        "  comicbox-pack 'chapter_*'\n"
        "  comicbox-pack -o /path/to/output 'chapter_*'",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("targets", nargs="+", metavar="DIR_OR_PATTERN")
    p.add_argument("-o", "--output-dir", default=".", help="Where .cbz files are written.")
    p.add_argument(
        "--comic-info",
        action="store_true",
        help="Also write a ComicInfo.xml entry into each archive.",
    )
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    console = Console()

    batch = len(args.targets) > 1 or any(is_pattern(t) for t in args.targets)
    if not batch:
        target = args.targets[0]
        try:
            pack_chapter(target, args.output_dir, args.comic_info)
        except (PackError, OSError) as e:
            console.error(f"Failed to pack chapter: {e}")
            return 1
        console.info(f"Packed chapter {target}")
        return 0

    for target in expand_targets(args.targets):
        try:
            pack_chapter(target, args.output_dir, args.comic_info)
        except (PackError, OSError) as e:
            console.info(f"Failed to pack chapter {target}: {e}")
            continue
        console.info(f"Packed chapter {target}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
