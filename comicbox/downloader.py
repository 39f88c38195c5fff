#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# ------------------------------------------------------------------
# Comic chapter downloader  →  numbered image folders
# -----------------------------------------------------------
import argparse
import os
import sys
import textwrap
from typing import List, Optional
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from .log import Console
from .net import (
    FetchError,
    create_session,
    download_image_with_retry,
    fetch_page_with_retry,
    parse_local_file,
    page_title,
)
from .retry import RetryError
from .sites import (
    DEFAULT_SITE,
    BaseSiteHandler,
    ChapterInfo,
    SiteComicContext,
    available_sites,
    get_handler_by_name,
    get_handler_for_url,
)
from .text import sanitize_filename

_PREVIEW_COUNT = 5


class DownloadError(RuntimeError):
    """A failure that ends the whole run."""


# -----------------------------------------------------------
# Helper Functions
# -----------------------------------------------------------
def resolve_site_handler(target: Optional[str], site_name: Optional[str]) -> BaseSiteHandler:
    if site_name:
        handler = get_handler_by_name(site_name)
        if not handler:
            raise DownloadError(
                f"Unknown site handler: {site_name} "
                f"(available: {', '.join(available_sites())})"
            )
        return handler

    if target and is_url(target):
        handler = get_handler_for_url(target)
        if not handler:
            raise DownloadError(
                "Unable to auto-detect a site handler for the provided URL. "
                "Please specify one with --site."
            )
        return handler

    return get_handler_by_name(DEFAULT_SITE)


def is_url(value: str) -> bool:
    return value.startswith(("http://", "https://"))


def chapter_id_from_url(url: str) -> str:
    parts = [p for p in urlparse(url).path.split("/") if p]
    return parts[-1] if parts else "unknown"


def fetch_site_page(url: str, handler: BaseSiteHandler, scraper, console: Console) -> BeautifulSoup:
    return fetch_page_with_retry(
        url,
        scraper,
        console,
        referer=handler.referer,
        validate=handler.is_valid_page,
    )


def log_found_images(soup: BeautifulSoup, image_urls: List[str], console: Console) -> None:
    console.verbose(f"Page title: {page_title(soup).strip()}")
    console.verbose(f"Page HTML length: {len(str(soup))} characters")
    for i, url in enumerate(image_urls[:_PREVIEW_COUNT], start=1):
        console.verbose(f"  Found image [{i}]: {url}")
    if len(image_urls) > _PREVIEW_COUNT:
        console.verbose(f"  ... and {len(image_urls) - _PREVIEW_COUNT} more")
    console.info(f"Found {len(image_urls)} images")


def find_start_index(
    chapters: List[ChapterInfo], start_chapter: Optional[str], console: Console
) -> int:
    if not start_chapter:
        return 0
    for index, chapter in enumerate(chapters):
        if chapter.id == start_chapter:
            console.info(f"Starting at chapter [{index + 1}/{len(chapters)}]")
            return index
    console.warning(
        f"start chapter {start_chapter} not found, downloading from the beginning"
    )
    return 0


# -----------------------------------------------------------
# Downloads
# -----------------------------------------------------------
def save_chapter_images(
    image_urls: List[str],
    folder: str,
    handler: BaseSiteHandler,
    scraper,
    console: Console,
) -> int:
    """
    Downloads ``image_urls`` into ``folder`` as 0001.jpg, 0002.jpg, ...

    Failed images are reported and skipped. Returns how many were saved.
    """
    saved = 0
    total = len(image_urls)
    for i, url in enumerate(image_urls, start=1):
        path = os.path.join(folder, f"{i:04d}.jpg")
        try:
            download_image_with_retry(url, path, scraper, console, referer=handler.referer)
        except RetryError as e:
            console.info(f"  Failed to download image {i}: {e}")
            continue
        saved += 1
        console.info(f"  Downloaded image {i}/{total}: {path}")
    return saved


def download_chapter(
    target: str,
    out_dir: str,
    handler: BaseSiteHandler,
    scraper,
    console: Console,
    local: bool = False,
) -> str:
    """Downloads one chapter, from the site or from a saved page. Returns its folder."""
    if local:
        console.info(f"Parsing image links from local file {target}...")
        soup = parse_local_file(target)
        chapter_id = "local_" + os.path.basename(target)
    else:
        if is_url(target):
            url, chapter_id = target, chapter_id_from_url(target)
        else:
            url, chapter_id = handler.chapter_url(target), target
        console.info(f"Downloading images for chapter {chapter_id}...")
        soup = fetch_site_page(url, handler, scraper, console)

    image_urls = handler.extract_image_urls(soup)
    if not image_urls:
        raise DownloadError("No image links found, check that the selectors still match the page")
    log_found_images(soup, image_urls, console)

    title = handler.extract_chapter_title(soup) or sanitize_filename(f"chapter_{chapter_id}")
    folder = os.path.join(out_dir, title)
    os.makedirs(folder, exist_ok=True)

    save_chapter_images(image_urls, folder, handler, scraper, console)
    console.info(f"\nChapter '{title}' done! Images saved in {folder}")
    return folder


def download_chapters(
    context: SiteComicContext,
    default_title: str,
    out_dir: str,
    handler: BaseSiteHandler,
    scraper,
    console: Console,
    start_chapter: Optional[str] = None,
) -> str:
    """
    Downloads every chapter listed in ``context`` into
    ``<comic>/<NNN>_<chapter title>/``.

    A chapter that cannot be fetched is reported and skipped; only a missing
    chapter list or an unusable comic folder ends the run.
    """
    chapters = context.chapters
    if not chapters:
        raise DownloadError("No chapter links found")

    comic_title = context.title or sanitize_filename(default_title)
    comic_dir = os.path.join(out_dir, comic_title)
    os.makedirs(comic_dir, exist_ok=True)

    total = len(chapters)
    console.info(f"Comic title: {comic_title}")
    console.info(f"Found {total} chapters")

    start = find_start_index(chapters, start_chapter, console)
    for index in range(start, total):
        chapter = chapters[index]
        dir_name = f"{index + 1:03d}_{sanitize_filename(chapter.title)}"
        console.info(f"\nDownloading chapter [{index + 1}/{total}]: {chapter.title} ({chapter.id})")

        try:
            soup = fetch_site_page(handler.chapter_url(chapter.id), handler, scraper, console)
        except RetryError as e:
            console.info(f"  Failed to fetch chapter page: {e}")
            continue

        image_urls = handler.extract_image_urls(soup)
        if not image_urls:
            console.info("  No image links found")
            continue
        log_found_images(soup, image_urls, console)

        folder = os.path.join(comic_dir, dir_name)
        try:
            os.makedirs(folder, exist_ok=True)
        except OSError as e:
            console.info(f"  Failed to create directory {folder}: {e}")
            continue

        save_chapter_images(image_urls, folder, handler, scraper, console)
        console.info(f"Chapter {chapter.title} done")

    console.info(f"\nComic '{comic_title}' done! All chapters saved in {comic_dir}")
    return comic_dir


def download_series(
    series_id: str,
    out_dir: str,
    handler: BaseSiteHandler,
    scraper,
    console: Console,
    start_chapter: Optional[str] = None,
) -> str:
    console.info(f"Downloading series {series_id}...")
    if start_chapter:
        console.info(f"Starting from chapter {start_chapter}")
    soup = fetch_site_page(handler.book_url(series_id), handler, scraper, console)
    context = handler.build_comic_context(soup)
    return download_chapters(
        context, f"comic_{series_id}", out_dir, handler, scraper, console, start_chapter
    )


def download_local_series(
    path: str,
    out_dir: str,
    handler: BaseSiteHandler,
    scraper,
    console: Console,
    start_chapter: Optional[str] = None,
) -> str:
    """Reads the chapter list from a saved table-of-contents page, then downloads from the site."""
    console.info(f"Downloading series from local file {path}...")
    soup = parse_local_file(path)
    context = handler.build_comic_context(soup)
    return download_chapters(
        context, "local_comic", out_dir, handler, scraper, console, start_chapter
    )


# -----------------------------------------------------------
# main
# -----------------------------------------------------------
_EPILOG = textwrap.dedent(
    """\
    examples:
      comicbox 16124                          download one chapter
      comicbox https://www.92hm.life/chapter/16124
      comicbox --series 418                   download a whole comic
      comicbox --series 418 --start 16124     ... starting at a chapter
      comicbox --local hm_page.html           use a saved chapter page
      comicbox --local-series comic_index.html
                                              use a saved chapter list

    Chapter ids are the number in /chapter/<id>, comic ids the number in /book/<id>.
    Pack finished chapters with `comicbox-pack 'chapter_*'` to read them in any
    CBZ reader.
    """
)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        "comicbox",
        description="Download comic chapters as numbered images.",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("chapter", nargs="?", help="Chapter id or full chapter URL.")
    p.add_argument("--local", metavar="PATH", help="Parse a saved chapter page.")
    p.add_argument("--series", metavar="ID", help="Download every chapter of a comic.")
    p.add_argument(
        "--local-series",
        metavar="PATH",
        help="Read the chapter list from a saved table-of-contents page.",
    )
    p.add_argument(
        "--start",
        metavar="CHAPTER_ID",
        help="With --series/--local-series, begin at this chapter.",
    )
    p.add_argument(
        "--site",
        default=None,
        help="Explicitly select the site handler (auto-detected by URL when omitted).",
    )
    p.add_argument(
        "-o",
        "--output-dir",
        default=".",
        help="Directory the chapter folders are created in (default: current).",
    )
    p.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable detailed, step-by-step logging.",
    )
    p.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Log request/response details for every page fetch.",
    )
    return p


def main(argv: Optional[List[str]] = None, scraper=None) -> int:
    p = build_parser()
    args = p.parse_args(argv)

    if not (args.chapter or args.local or args.series or args.local_series):
        p.print_help()
        return 0

    console = Console.from_flags(args.verbose, args.debug)
    if args.start and not (args.series or args.local_series):
        console.warning("--start only applies to --series and --local-series, ignoring it")

    try:
        handler = resolve_site_handler(args.chapter, args.site)
        if scraper is None:
            scraper = create_session(console)

        if args.local_series:
            download_local_series(
                args.local_series, args.output_dir, handler, scraper, console, args.start
            )
        elif args.series:
            download_series(
                args.series, args.output_dir, handler, scraper, console, args.start
            )
        elif args.local:
            download_chapter(
                args.local, args.output_dir, handler, scraper, console, local=True
            )
        else:
            download_chapter(args.chapter, args.output_dir, handler, scraper, console)
    except RetryError as e:
        console.error(f"Failed to fetch page: {e}")
        return 1
    except (DownloadError, FetchError, OSError, requests.exceptions.RequestException) as e:
        console.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
