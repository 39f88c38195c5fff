from __future__ import annotations

import os
from typing import Callable, Dict, Optional
from urllib.parse import urlparse

import cloudscraper
import requests
from bs4 import BeautifulSoup, FeatureNotFound
from cloudscraper.exceptions import CaptchaException, CloudflareException

from .log import Console
from .retry import RetryPolicy, constant_delay

REQUEST_TIMEOUT = 60  # seconds
MAX_REDIRECTS = 10

PAGE_ATTEMPTS = 3
PAGE_RETRY_DELAY = 5  # seconds
IMAGE_ATTEMPTS = 3
IMAGE_RETRY_DELAY = 2  # seconds

# Shown in the <title> of the site's server error pages.
ERROR_PAGE_MARKER = "错误"

_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

PAGE_HEADERS: Dict[str, str] = {
    "User-Agent": _USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
    "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
    "Cache-Control": "max-age=0",
}

IMAGE_HEADERS: Dict[str, str] = {
    "User-Agent": _USER_AGENT,
    "Accept": "image/avif,image/webp,image/apng,image/svg+xml,image/*,*/*;q=0.8",
    "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Sec-Fetch-Dest": "image",
    "Sec-Fetch-Mode": "no-cors",
    "Sec-Fetch-Site": "cross-site",
}


class FetchError(RuntimeError):
    """A response arrived but cannot be used (bad status, bad URL, rejected page)."""


# Network, anti-bot challenge, decoding, filesystem and rejected-response
# failures all count as a failed attempt. cloudscraper's own errors do not
# derive from RequestException.
RETRYABLE_ERRORS = (
    requests.exceptions.RequestException,
    CloudflareException,
    CaptchaException,
    OSError,
    ValueError,
    FetchError,
)


# -----------------------------------------------------------
# Session
# -----------------------------------------------------------
def create_session(console: Console):
    """
    Builds the HTTP session shared by one run.

    cloudscraper is preferred; if it fails to initialise we fall back to a
    plain requests.Session.
    """
    try:
        scraper = cloudscraper.create_scraper(
            browser={
                "browser": "chrome",
                "platform": "darwin",
                "mobile": False,
            }
        )
    except Exception as e:
        console.verbose(
            f"  Warning: cloudscraper init failed ({e}). "
            "Falling back to requests.Session()"
        )
        scraper = requests.Session()
    scraper.max_redirects = MAX_REDIRECTS
    return scraper


# -----------------------------------------------------------
# HTML parsing
# -----------------------------------------------------------
def make_soup(markup) -> BeautifulSoup:
    try:
        return BeautifulSoup(markup, "lxml")
    except FeatureNotFound:
        return BeautifulSoup(markup, "html.parser")


def parse_local_file(path: str) -> BeautifulSoup:
    with open(path, "rb") as fh:
        return make_soup(fh.read())


def page_title(soup: BeautifulSoup) -> str:
    node = soup.find("title")
    return node.get_text() if node else ""


def is_usable_page(soup: BeautifulSoup, marker: Optional[str] = ERROR_PAGE_MARKER) -> bool:
    """A page counts once it has a non-empty <title> that is not an error page."""
    title = page_title(soup)
    if not title.strip():
        return False
    return not (marker and marker in title)


# -----------------------------------------------------------
# Pages
# -----------------------------------------------------------
def _dump_headers(console: Console, label: str, headers) -> None:
    console.debug(f"DEBUG: {label}:")
    for key, value in headers.items():
        console.debug(f"  {key}: {value}")


def fetch_page(
    url: str, scraper, console: Console, referer: Optional[str] = None
) -> BeautifulSoup:
    """Performs a single GET and parses the decoded body."""
    headers = dict(PAGE_HEADERS)
    if referer:
        headers["Referer"] = referer

    console.debug(f"DEBUG: Requesting URL: {url}")
    _dump_headers(console, "Request headers", headers)

    r = scraper.get(url, headers=headers, timeout=REQUEST_TIMEOUT)
    for hop in r.history:
        console.debug(f"DEBUG: Redirected from: {hop.url}")
    console.debug(f"DEBUG: Status code: {r.status_code}")
    _dump_headers(console, "Response headers", r.headers)

    if r.status_code != 200:
        body = r.text[:1024]
        console.debug(f"DEBUG: Error body: {body}")
        raise FetchError(f"unexpected status {r.status_code}, body: {body}")

    # requests undoes gzip and (with the brotli package) br; anything else
    # arrives as sent.
    content = r.content
    console.debug(f"DEBUG: Body size: {len(content)} bytes")

    soup = make_soup(content)
    console.debug(f"DEBUG: Page title: {page_title(soup)}")
    return soup


def fetch_page_with_retry(
    url: str,
    scraper,
    console: Console,
    referer: Optional[str] = None,
    validate: Callable[[BeautifulSoup], bool] = is_usable_page,
    policy: Optional[RetryPolicy] = None,
) -> BeautifulSoup:
    """
    Fetches ``url`` until a page passes ``validate``.

    Raises RetryError once every attempt failed.
    """
    if policy is None:
        policy = RetryPolicy(
            PAGE_ATTEMPTS,
            constant_delay(PAGE_RETRY_DELAY),
            retry_on=RETRYABLE_ERRORS,
        )
    attempt_no = 0

    def attempt() -> BeautifulSoup:
        nonlocal attempt_no
        attempt_no += 1
        console.info(f"Fetching page... (attempt {attempt_no}/{policy.attempts})")
        soup = fetch_page(url, scraper, console, referer)
        if not validate(soup):
            raise FetchError(
                f"page content looks incomplete (title: {page_title(soup).strip()!r})"
            )
        return soup

    def report(n: int, error: BaseException, will_retry: bool) -> None:
        console.info(f"  Failed to fetch page: {error}")
        if will_retry:
            console.info(f"  Waiting {PAGE_RETRY_DELAY}s before retrying...")

    return policy.run(attempt, on_failure=report)


# -----------------------------------------------------------
# Images
# -----------------------------------------------------------
def download_image(
    url: str, path: str, scraper, referer: Optional[str] = None
) -> str:
    """
    Streams one image to ``path``.

    The file is created before the request, so a failure leaves an empty or
    partial file behind.
    """
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise FetchError(f"invalid URL: {url}")

    headers = dict(IMAGE_HEADERS)
    if referer:
        headers["Referer"] = referer

    with open(path, "wb") as fh:
        with scraper.get(
            url, headers=headers, stream=True, timeout=REQUEST_TIMEOUT
        ) as r:
            if r.status_code != 200:
                raise FetchError(f"image download failed with status {r.status_code}")
            for chunk in r.iter_content(8192):
                fh.write(chunk)
    return path


def download_image_with_retry(
    url: str,
    path: str,
    scraper,
    console: Console,
    referer: Optional[str] = None,
    policy: Optional[RetryPolicy] = None,
) -> str:
    """Any 200 response is accepted; there is no content check for images."""
    if policy is None:
        policy = RetryPolicy(
            IMAGE_ATTEMPTS,
            constant_delay(IMAGE_RETRY_DELAY),
            retry_on=RETRYABLE_ERRORS,
        )

    def report(n: int, error: BaseException, will_retry: bool) -> None:
        console.verbose(
            f"  Warning: Attempt {n}/{policy.attempts} failed for "
            f"{os.path.basename(path)}: {error}"
        )
        if will_retry:
            console.info(
                f"  Image download failed, retrying in {IMAGE_RETRY_DELAY}s... "
                f"({n}/{policy.attempts})"
            )

    return policy.run(
        lambda: download_image(url, path, scraper, referer), on_failure=report
    )


__all__ = [
    "ERROR_PAGE_MARKER",
    "FetchError",
    "create_session",
    "download_image",
    "download_image_with_retry",
    "fetch_page",
    "fetch_page_with_retry",
    "is_usable_page",
    "make_soup",
    "page_title",
    "parse_local_file",
]
