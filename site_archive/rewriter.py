"""Rewrite references in archived HTML and CSS to point at the archive."""

import logging
import re
from typing import Match, Optional

from site_archive.errors import ArchiveError
from site_archive.urls import (
    hostname,
    is_special_reference,
    resolve_url,
    sanitize_path,
    split_srcset,
    url_path,
)

logger = logging.getLogger(__name__)


def _attr(names: str, flags: int = 0):
    """Pattern for ``name="value"`` groups: (prefix, quote, value)."""
    return re.compile(r"(?<![\w-])((?:" + names + r""")\s*=\s*)(["'])(.*?)\2""", re.IGNORECASE | flags)


class ContentRewriter:
    """Rewrite the references of one archive run.

    Every rewritten reference has the form
    ``{static_root}/{domain}/{date}{path}``, ``path`` being the canonical
    storage path of the referenced resource.
    """

    ANCHOR_TAG = re.compile(r"<a\b[^>]*>", re.IGNORECASE)
    OTHER_TAG = re.compile(r"<(?!a\b)[a-zA-Z][\w:-]*\b[^>]*>", re.IGNORECASE)
    HREF_ATTR = _attr("href")
    SRC_ATTR = _attr("src")
    SRCSET_ATTR = _attr("srcset", re.DOTALL)
    DATA_SRC_ATTR = _attr("data-src")
    MISC_ATTR = _attr("ping|poster|background")
    CSS_URL = re.compile(r"""url\(\s*(["']?)(.*?)\1\s*\)""", re.IGNORECASE)

    def __init__(self, static_root: str, domain: str, date: str):
        self.static_root = static_root[:-1] if static_root.endswith("/") else static_root
        self.domain = domain
        self.date = date

    def archive_url(self, url: str) -> str:
        """Return the archived location of an absolute URL."""
        return f"{self.static_root}/{self.domain}/{self.date}{sanitize_path(url_path(url))}"

    def rewrite_html(self, html: str, base_url: str) -> str:
        """Rewrite anchors, embedded resources and inline styles of a page."""
        html = self.ANCHOR_TAG.sub(lambda m: self._rewrite_anchor(m.group(0), base_url), html)
        html = self.SRC_ATTR.sub(lambda m: self._rewrite_attr(m, base_url), html)
        html = self.OTHER_TAG.sub(
            lambda m: self.HREF_ATTR.sub(lambda a: self._rewrite_attr(a, base_url), m.group(0)), html
        )
        html = self.rewrite_css(html, base_url)
        html = self.SRCSET_ATTR.sub(lambda m: self._rewrite_srcset(m, base_url), html)
        html = self.DATA_SRC_ATTR.sub(lambda m: self._rewrite_attr(m, base_url), html)
        html = self.MISC_ATTR.sub(lambda m: self._rewrite_attr(m, base_url), html)
        return html

    def rewrite_css(self, css: str, base_url: str) -> str:
        """Rewrite every ``url(...)`` of a stylesheet."""

        def replace(match: Match) -> str:
            ref = match.group(2)
            if not ref or ref.strip().lower().startswith("data:"):
                return match.group(0)
            archived = self._archive_reference(ref, base_url)
            if archived is None:
                return match.group(0)
            quote = match.group(1)
            return f"url({quote}{archived}{quote})"

        return self.CSS_URL.sub(replace, css)

    def _rewrite_anchor(self, tag: str, base_url: str) -> str:
        """Rewrite the href of an anchor tag when it targets the page's own host."""

        def replace(match: Match) -> str:
            href = match.group(3)
            lowered = href.strip().lower()
            if is_special_reference(href) or lowered.startswith(("http://", "https://", "//")):
                return match.group(0)
            try:
                full_url = resolve_url(href, base_url)
                if hostname(full_url) != hostname(base_url):
                    return match.group(0)
                archived = self.archive_url(full_url)
            except ArchiveError as e:
                logger.debug("Leaving anchor %r unchanged: %s", href[:80], e)
                return match.group(0)
            return f"{match.group(1)}{match.group(2)}{archived}{match.group(2)}"

        return self.HREF_ATTR.sub(replace, tag, count=1)

    def _rewrite_attr(self, match: Match, base_url: str) -> str:
        archived = self._archive_reference(match.group(3), base_url)
        if archived is None:
            return match.group(0)
        return f"{match.group(1)}{match.group(2)}{archived}{match.group(2)}"

    def _rewrite_srcset(self, match: Match, base_url: str) -> str:
        """Rewrite each candidate URL of a srcset, keeping its descriptors."""
        sources = []
        for url, descriptor in split_srcset(match.group(3)):
            archived = self._archive_reference(url, base_url)
            sources.append(f"{archived or url} {descriptor}".rstrip())
        return f"{match.group(1)}{match.group(2)}{', '.join(sources)}{match.group(2)}"

    def _archive_reference(self, reference: str, base_url: str) -> Optional[str]:
        """Archived location of a reference, or None when it must stay as is."""
        if is_special_reference(reference):
            return None
        try:
            return self.archive_url(resolve_url(reference, base_url))
        except ArchiveError as e:
            logger.debug("Leaving reference %r unchanged: %s", reference[:80], e)
            return None
