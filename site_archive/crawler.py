"""Same-site crawler discovering the pages and assets of a website."""

import logging
import re
from typing import Dict, List, Optional, Pattern, Set, Tuple

from site_archive.errors import ArchiveError, FetchFailure
from site_archive.models import Asset, AssetType
from site_archive.urls import (
    get_asset_type,
    hostname,
    is_navigable_path,
    is_special_reference,
    page_path,
    resolve_url,
    sanitize_path,
    split_srcset,
    url_path,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 5

# Worklist entry: url, suggested storage path, depth, referring page
_Job = Tuple[str, str, int, Optional[str]]


def _attr_pattern(attr: str, extensions: str) -> Pattern:
    """Build a pattern capturing ``attr="...ext"`` values ending in one of the extensions."""
    return re.compile(
        r"(?<![\w-])" + attr + r"""\s*=\s*["']([^"']*?\.(?:""" + extensions + r""")(?:[?#][^"']*)?)["']""",
        re.IGNORECASE,
    )


def _reference_path(reference: str) -> str:
    return re.split(r"[?#]", reference, maxsplit=1)[0]


class Crawler:
    """Depth-bounded crawler for a single site.

    A crawler owns the state of exactly one crawl and cannot be reused.
    """

    ANCHOR_PATTERN = re.compile(r"""<a\b[^>]*?\shref\s*=\s*["']([^"']*)["'][^>]*>""", re.IGNORECASE)
    IFRAME_PATTERN = re.compile(r"""<iframe\b[^>]*?\ssrc\s*=\s*["']([^"']*)["']""", re.IGNORECASE)
    STYLESHEET_PATTERN = _attr_pattern("href", "css")
    CSS_URL_PATTERN = re.compile(r"""url\(\s*["']?([^"')]*?)["']?\s*\)""", re.IGNORECASE)
    SRCSET_PATTERN = re.compile(r"""(?<![\w-])srcset\s*=\s*["']([^"']*)["']""", re.IGNORECASE)
    DATA_SRC_PATTERN = re.compile(r"""(?<![\w-])data-src\s*=\s*["']([^"']*)["']""", re.IGNORECASE)

    # Non-navigational assets referenced from markup
    ASSET_PATTERNS = [
        (_attr_pattern("src", "js"), AssetType.JS),
        (_attr_pattern("src", "jpg|jpeg|png|gif|webp|svg"), AssetType.IMAGE),
        (
            re.compile(
                r"""url\(\s*["']?([^"')]*?\.(?:jpg|jpeg|png|gif|webp)(?:[?#][^"')]*)?)["']?\s*\)""",
                re.IGNORECASE,
            ),
            AssetType.IMAGE,
        ),
        (_attr_pattern("src", "woff2?|ttf|eot"), AssetType.FONT),
        (_attr_pattern("src", "mp3|mp4|webm"), AssetType.MEDIA),
        (_attr_pattern("src", "pdf"), AssetType.PDF),
        (_attr_pattern("poster", "jpg|jpeg|png|gif|webp|svg"), AssetType.IMAGE),
        (_attr_pattern("href", "ico"), AssetType.ICON),
    ]

    # Anchor targets that never lead to a page
    SKIPPED_LINK_PREFIXES = ("#", "javascript:", "mailto:", "tel:", "data:")

    def __init__(self, seed_url: str, fetcher, max_depth: int = DEFAULT_MAX_DEPTH):
        """Initialize the crawler.

        Args:
            seed_url: Page the crawl starts from; its host is the crawl origin.
            fetcher: Object with a ``fetch(url)`` method returning a
                :class:`~site_archive.fetcher.Fetched`.
            max_depth: Maximum link depth followed from the seed page.
        """
        self.seed_url = seed_url
        self.fetcher = fetcher
        self.max_depth = max_depth
        self.origin = hostname(seed_url)
        self.visited: Set[str] = set()
        self.assets: Dict[str, Asset] = {}
        self._used = False

    def discover(self, seed_url: Optional[str] = None) -> List[Asset]:
        """Discover every page and asset reachable from the seed.

        Raises:
            FetchFailure: if the seed page itself cannot be fetched.
        """
        if self._used:
            raise RuntimeError("Crawler instances are single-use")
        self._used = True

        seed_url = seed_url or self.seed_url
        stack: List[_Job] = [(seed_url, "/index.html", 0, None)]

        while stack:
            url, suggested_path, depth, parent = stack.pop()
            if url in self.visited or depth > self.max_depth:
                continue
            children = self._process_page(url, suggested_path, depth, parent, is_seed=url == seed_url)
            # Reversed so the first child is expanded first, like a recursive descent
            stack.extend(reversed(children))

        logger.info("Discovered %d assets from %s", len(self.assets), seed_url)
        return list(self.assets.values())

    def _process_page(
        self, url: str, suggested_path: str, depth: int, parent: Optional[str], is_seed: bool = False
    ) -> List[_Job]:
        """Fetch one page, register it with its assets and return the pages it leads to."""
        self.visited.add(url)
        logger.info("Processing HTML page: %s (depth: %d)", url, depth)

        try:
            html = self.fetcher.fetch(url).text
        except FetchFailure as e:
            if is_seed:
                raise
            logger.warning("Failed to process HTML page: %s (%s)", url, e.reason)
            return []

        self._add_asset(url, AssetType.HTML, suggested_path, depth, parent)
        self._process_stylesheets(html, url, depth)
        self._process_assets(html, url, depth)
        return self._process_iframes(html, url, depth) + self._process_links(html, url, depth)

    def _process_stylesheets(self, html: str, base_url: str, depth: int):
        """Register linked stylesheets and the resources they reference."""
        for css_ref in self._extract(self.STYLESHEET_PATTERN, html):
            full_url = self._resolve(css_ref, base_url)
            if not full_url or full_url in self.visited:
                continue
            self.visited.add(full_url)
            self._add_asset(full_url, AssetType.CSS, url_path(full_url), depth, base_url)

            try:
                css = self.fetcher.fetch(full_url).text
            except FetchFailure as e:
                logger.warning("Failed to process CSS: %s (%s)", full_url, e.reason)
                continue
            self._process_css_content(css, full_url, depth)

    def _process_css_content(self, css: str, base_url: str, depth: int):
        """Register ``url(...)`` references of a stylesheet as leaf assets."""
        for ref in self._extract(self.CSS_URL_PATTERN, css):
            full_url = self._resolve(ref, base_url)
            if not full_url or full_url in self.visited:
                continue
            self.visited.add(full_url)
            path = url_path(full_url)
            self._add_asset(full_url, get_asset_type(path), path, depth, base_url)

    def _process_assets(self, html: str, base_url: str, depth: int):
        """Register scripts, images, fonts and media referenced by a page."""
        for pattern, asset_type in self.ASSET_PATTERNS:
            for ref in self._extract(pattern, html):
                self._register_leaf(ref, base_url, asset_type, depth)

        # Lazy-loaded resources, typed by extension
        for ref in self._extract(self.DATA_SRC_PATTERN, html):
            self._register_leaf(ref, base_url, get_asset_type(_reference_path(ref)), depth)

        for match in self.SRCSET_PATTERN.finditer(html):
            for ref, _ in split_srcset(match.group(1)):
                if is_special_reference(ref):
                    continue
                self._register_leaf(ref, base_url, get_asset_type(_reference_path(ref)), depth)

    def _register_leaf(self, ref: str, base_url: str, asset_type: AssetType, depth: int):
        full_url = self._resolve(ref, base_url)
        if not full_url or full_url in self.visited:
            return
        self.visited.add(full_url)
        self._add_asset(full_url, asset_type, url_path(full_url), depth, base_url)

    def _process_iframes(self, html: str, base_url: str, depth: int) -> List[_Job]:
        """Queue same-host iframes as pages and record external ones."""
        pages: List[_Job] = []
        for src in self._extract(self.IFRAME_PATTERN, html):
            full_url = self._resolve(src, base_url)
            if not full_url:
                continue
            if hostname(full_url) == self.origin:
                pages.append((full_url, page_path(url_path(full_url)), depth + 1, base_url))
            else:
                self._add_asset(
                    full_url, AssetType.IFRAME, url_path(full_url), depth, base_url, is_external=True
                )
        return pages

    def _process_links(self, html: str, base_url: str, depth: int) -> List[_Job]:
        """Queue same-host anchors that look like HTML pages."""
        pages: List[_Job] = []
        for match in self.ANCHOR_PATTERN.finditer(html):
            href = match.group(1).strip()
            if not href or href.lower().startswith(self.SKIPPED_LINK_PREFIXES):
                continue
            full_url = self._resolve(href, base_url)
            if not full_url or hostname(full_url) != self.origin:
                continue
            path = url_path(full_url)
            if is_navigable_path(path):
                pages.append((full_url, page_path(path), depth + 1, base_url))
        return pages

    def _resolve(self, reference: str, base_url: str) -> Optional[str]:
        """Resolve a reference, returning None when it cannot be followed."""
        try:
            return resolve_url(reference, base_url)
        except ArchiveError as e:
            logger.debug("Skipping reference %r on %s: %s", reference[:80], base_url, e)
            return None

    @staticmethod
    def _extract(pattern: Pattern, content: str) -> List[str]:
        """Return every captured reference, without empty and data: values."""
        urls = []
        for match in pattern.finditer(content):
            ref = match.group(1).strip()
            if ref and not is_special_reference(ref):
                urls.append(ref)
        return urls

    def _add_asset(
        self,
        url: str,
        asset_type: AssetType,
        path: str,
        depth: int,
        parent: Optional[str] = None,
        is_external: bool = False,
    ):
        """Register an asset unless its URL is already known."""
        if url in self.assets:
            return
        self.assets[url] = Asset(
            url=url,
            type=asset_type,
            path=sanitize_path(path),
            is_external=is_external,
            parent_url=parent,
            depth=depth,
        )
