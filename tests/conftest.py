"""Shared fixtures: an in-memory website served by a fake fetcher."""

from datetime import datetime, timezone

import pytest

from site_archive.errors import FetchFailure
from site_archive.fetcher import Fetched
from site_archive.urls import get_content_type


class FakeFetcher:
    """Serves a fixed set of URLs and records every fetch."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    def add(self, url, body, content_type=None):
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.pages[url] = (body, content_type or get_content_type(url.split("?")[0]))

    def fetch(self, url):
        self.calls.append(url)
        if url not in self.pages:
            raise FetchFailure(url, "HTTP 404", status_code=404)
        body, content_type = self.pages[url]
        return Fetched(url, body, content_type, None)


SEED = "https://ex.com/"

INDEX_HTML = """<html><head>
<link rel="stylesheet" href="/css/site.css?v=2">
<link rel="icon" href="/favicon.ico">
<script src="/js/app.js"></script>
</head><body style="background: url('/img/bg.png')">
<img src="img/logo.png" srcset="img/logo-2x.png 2x, img/logo-3x.png 3x">
<iframe src="https://youtube.com/embed/xyz"></iframe>
<iframe src="/frames/widget.html"></iframe>
<a href="/about">About</a>
<a href="mailto:a@b.com">Mail</a>
<a href="#top">Top</a>
<a href="https://other.com/page">Other</a>
<a href="/files/report.zip">Report</a>
<a href="javascript:void(0)">Nothing</a>
</body></html>"""

SITE_CSS = """body { background: url("../img/tile.gif"); }
@font-face { font-family: A; src: url(/fonts/a.woff2) format("woff2"); }
.x { background: url(data:image/png;base64,AAAA); }"""

ABOUT_HTML = """<html><body>
<a href="/">Home</a>
<a href="/about/team/">Team</a>
<img src="/img/about.jpg">
</body></html>"""

TEAM_HTML = """<html><body><a href="/about">Back</a></body></html>"""

WIDGET_HTML = """<html><body><img src="/img/w.png"></body></html>"""


def build_site():
    """Return a fetcher serving a small site rooted at ``SEED``."""
    fetcher = FakeFetcher()
    fetcher.add(SEED, INDEX_HTML, "text/html")
    fetcher.add("https://ex.com/css/site.css?v=2", SITE_CSS, "text/css")
    fetcher.add("https://ex.com/about", ABOUT_HTML, "text/html")
    fetcher.add("https://ex.com/about/team/", TEAM_HTML, "text/html")
    fetcher.add("https://ex.com/frames/widget.html", WIDGET_HTML)
    for path in [
        "/favicon.ico",
        "/js/app.js",
        "/img/bg.png",
        "/img/logo.png",
        "/img/logo-2x.png",
        "/img/logo-3x.png",
        "/img/tile.gif",
        "/img/about.jpg",
        "/img/w.png",
        "/fonts/a.woff2",
    ]:
        fetcher.add(f"https://ex.com{path}", b"\x00binary" + path.encode())
    return fetcher


@pytest.fixture
def site():
    return build_site()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
