import os

import pytest
from cloudscraper.exceptions import CloudflareCaptchaError, CloudflareChallengeError

from comicbox.downloader import DownloadError, find_start_index, main, resolve_site_handler
from comicbox.sites import ChapterInfo
from comicbox.sites.hm92 import HM92SiteHandler

from conftest import FakeResponse, FakeSession, html_page

SITE = "https://www.92hm.life"


def lazy_images(*urls):
    return "".join(f'<img class="lazy" data-original="{u}">' for u in urls)


def image_routes(*urls):
    return {u: FakeResponse(f"bytes of {u}".encode()) for u in urls}


def listing(path):
    return sorted(os.listdir(path))


# --- single chapter -----------------------------------------------------
def test_local_chapter_downloads_numbered_images(tmp_path):
    urls = ["https://i.example/a.jpg", "//i.example/b.jpg", "/upload/c.jpg"]
    page = tmp_path / "hm_page.html"
    page.write_text(html_page("Ep 1 - 92hm", "<h1>Episode 1</h1>" + lazy_images(*urls)), encoding="utf-8")
    absolute = ["https://i.example/a.jpg", "https://i.example/b.jpg", SITE + "/upload/c.jpg"]
    session = FakeSession(image_routes(*absolute))
    out = tmp_path / "out"

    assert main(["--local", str(page), "-o", str(out)], scraper=session) == 0

    chapter_dir = out / "Episode 1"
    assert listing(chapter_dir) == ["0001.jpg", "0002.jpg", "0003.jpg"]
    assert (chapter_dir / "0002.jpg").read_bytes() == b"bytes of https://i.example/b.jpg"
    assert session.urls() == absolute


def test_local_chapter_without_title_gets_default_name(tmp_path):
    page = tmp_path / "page.html"
    page.write_text(html_page("", lazy_images("https://i.example/a.jpg")), encoding="utf-8")
    session = FakeSession(image_routes("https://i.example/a.jpg"))

    assert main(["--local", str(page), "-o", str(tmp_path)], scraper=session) == 0
    assert listing(tmp_path / "chapter_local_page.html") == ["0001.jpg"]


def test_chapter_by_id_skips_failed_images(tmp_path, sleeps):
    chapter = html_page("Ch 5 - 92hm", lazy_images("https://i.example/1.jpg", "https://i.example/2.jpg"))
    session = FakeSession(
        {
            SITE + "/chapter/5": FakeResponse(chapter),
            "https://i.example/1.jpg": FakeResponse(b"", status_code=404),
            "https://i.example/2.jpg": FakeResponse(b"two"),
        }
    )

    assert main(["5", "-o", str(tmp_path)], scraper=session) == 0

    # 0001.jpg is left behind empty by the failed attempts
    assert (tmp_path / "Ch 5" / "0001.jpg").read_bytes() == b""
    assert (tmp_path / "Ch 5" / "0002.jpg").read_bytes() == b"two"
    assert sleeps == [2, 2]


def test_chapter_by_url(tmp_path):
    url = SITE + "/chapter/77"
    session = FakeSession(
        {
            url: FakeResponse(html_page("x", lazy_images("https://i.example/1.jpg"))),
            "https://i.example/1.jpg": FakeResponse(b"1"),
        }
    )
    assert main([url, "-o", str(tmp_path)], scraper=session) == 0
    assert listing(tmp_path / "x") == ["0001.jpg"]


def test_chapter_without_images_fails(tmp_path, capsys):
    session = FakeSession({SITE + "/chapter/9": FakeResponse(html_page("Ch 9", "<p>empty</p>"))})
    assert main(["9", "-o", str(tmp_path)], scraper=session) == 1
    assert "No image links found" in capsys.readouterr().out
    assert os.listdir(tmp_path) == []


def test_unreachable_chapter_fails_after_retries(tmp_path, sleeps):
    session = FakeSession()
    assert main(["9", "-o", str(tmp_path)], scraper=session) == 1
    assert len(session.calls) == 3
    assert sleeps == [5, 5]


# --- series -------------------------------------------------------------
def series_routes(chapter_pages):
    book = html_page(
        "My Comic - 92hm",
        '<div class="comic-name">My Comic</div>'
        '<a href="/chapter/101">Ch 1</a>'
        '<a href="/chapter/102">Ch 2</a>'
        '<a href="/chapter/101">Ch 1 (dup)</a>'
        '<a href="/chapter/103">Ch/3</a>',
    )
    routes = {SITE + "/book/418": FakeResponse(book)}
    routes.update(chapter_pages)
    return routes


def chapter_page(n):
    return FakeResponse(html_page(f"Ch {n}", lazy_images(f"https://i.example/{n}-1.jpg", f"https://i.example/{n}-2.jpg")))


def test_series_downloads_every_chapter(tmp_path):
    routes = series_routes({SITE + f"/chapter/10{n}": chapter_page(n) for n in (1, 2, 3)})
    routes.update(image_routes(*[f"https://i.example/{n}-{p}.jpg" for n in (1, 2, 3) for p in (1, 2)]))
    session = FakeSession(routes)

    assert main(["--series", "418", "-o", str(tmp_path)], scraper=session) == 0

    comic = tmp_path / "My Comic"
    assert listing(comic) == ["001_Ch 1", "002_Ch 2", "003_Ch_3"]
    for name in listing(comic):
        assert listing(comic / name) == ["0001.jpg", "0002.jpg"]


def test_series_continues_past_broken_chapter(tmp_path, sleeps):
    routes = series_routes(
        {
            SITE + "/chapter/101": chapter_page(1),
            SITE + "/chapter/102": FakeResponse("", status_code=500),
            SITE + "/chapter/103": FakeResponse(html_page("Ch 3", "<p>no images</p>")),
        }
    )
    routes.update(image_routes("https://i.example/1-1.jpg", "https://i.example/1-2.jpg"))
    session = FakeSession(routes)

    assert main(["--series", "418", "-o", str(tmp_path)], scraper=session) == 0
    assert listing(tmp_path / "My Comic") == ["001_Ch 1"]


def test_series_skips_chapter_behind_cloudflare_challenge(tmp_path, sleeps):
    routes = series_routes(
        {
            SITE + "/chapter/101": chapter_page(1),
            SITE + "/chapter/102": CloudflareChallengeError("challenge"),
            SITE + "/chapter/103": chapter_page(3),
        }
    )
    routes.update(image_routes(*[f"https://i.example/{n}-{p}.jpg" for n in (1, 3) for p in (1, 2)]))
    session = FakeSession(routes)

    assert main(["--series", "418", "-o", str(tmp_path)], scraper=session) == 0
    assert listing(tmp_path / "My Comic") == ["001_Ch 1", "003_Ch_3"]
    assert session.urls().count(SITE + "/chapter/102") == 3
    assert sleeps == [5, 5]


def test_chapter_retries_after_captcha(tmp_path, sleeps):
    session = FakeSession(
        {
            SITE + "/chapter/5": [
                CloudflareCaptchaError("captcha"),
                FakeResponse(html_page("Ch 5", lazy_images("https://i.example/1.jpg"))),
            ],
            "https://i.example/1.jpg": FakeResponse(b"1"),
        }
    )
    assert main(["5", "-o", str(tmp_path)], scraper=session) == 0
    assert listing(tmp_path / "Ch 5") == ["0001.jpg"]
    assert sleeps == [5]


def test_series_start_chapter(tmp_path):
    routes = series_routes({SITE + "/chapter/103": chapter_page(3)})
    routes.update(image_routes("https://i.example/3-1.jpg", "https://i.example/3-2.jpg"))
    session = FakeSession(routes)

    assert main(["--series", "418", "--start", "103", "-o", str(tmp_path)], scraper=session) == 0
    assert listing(tmp_path / "My Comic") == ["003_Ch_3"]
    assert SITE + "/chapter/101" not in session.urls()


def test_series_without_chapters_aborts(tmp_path):
    session = FakeSession({SITE + "/book/1": FakeResponse(html_page("Empty", "<p>none</p>"))})
    assert main(["--series", "1", "-o", str(tmp_path)], scraper=session) == 1
    assert os.listdir(tmp_path) == []


def test_local_series_fetches_chapters_from_site(tmp_path):
    toc = tmp_path / "index.html"
    toc.write_text(html_page("", '<a href="/chapter/101">Ch 1</a>'), encoding="utf-8")
    routes = {SITE + "/chapter/101": chapter_page(1)}
    routes.update(image_routes("https://i.example/1-1.jpg", "https://i.example/1-2.jpg"))
    out = tmp_path / "out"

    assert main(["--local-series", str(toc), "-o", str(out)], scraper=FakeSession(routes)) == 0
    assert listing(out / "local_comic" / "001_Ch 1") == ["0001.jpg", "0002.jpg"]


# --- helpers ------------------------------------------------------------
def test_find_start_index(console):
    chapters = [ChapterInfo("1", "a"), ChapterInfo("2", "b")]
    assert find_start_index(chapters, None, console) == 0
    assert find_start_index(chapters, "2", console) == 1
    assert find_start_index(chapters, "99", console) == 0


def test_resolve_site_handler():
    assert isinstance(resolve_site_handler("16124", None), HM92SiteHandler)
    assert isinstance(resolve_site_handler(SITE + "/chapter/1", None), HM92SiteHandler)
    with pytest.raises(DownloadError):
        resolve_site_handler("https://unknown.example/chapter/1", None)
    with pytest.raises(DownloadError):
        resolve_site_handler("1", "nope")


def test_no_arguments_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out
