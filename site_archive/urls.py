"""URL resolution and storage path helpers."""

import posixpath
import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from site_archive.errors import MalformedReference, UnsupportedScheme
from site_archive.models import AssetType

# References that are never followed nor rewritten
SPECIAL_PREFIXES = ("#", "javascript:", "data:", "blob:", "mailto:", "tel:")

CONTENT_TYPES = {
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "eot": "application/vnd.ms-fontobject",
    "mp4": "video/mp4",
    "mp3": "audio/mpeg",
    "pdf": "application/pdf",
    "xml": "application/xml",
    "txt": "text/plain",
}

ASSET_TYPES = {
    "html": AssetType.HTML,
    "htm": AssetType.HTML,
    "css": AssetType.CSS,
    "js": AssetType.JS,
    "jpg": AssetType.IMAGE,
    "jpeg": AssetType.IMAGE,
    "png": AssetType.IMAGE,
    "gif": AssetType.IMAGE,
    "webp": AssetType.IMAGE,
    "svg": AssetType.IMAGE,
    "woff": AssetType.FONT,
    "woff2": AssetType.FONT,
    "ttf": AssetType.FONT,
    "eot": AssetType.FONT,
    "ico": AssetType.ICON,
    "mp4": AssetType.MEDIA,
    "mp3": AssetType.MEDIA,
    "webm": AssetType.MEDIA,
    "json": AssetType.JSON,
    "xml": AssetType.XML,
    "pdf": AssetType.PDF,
}

_ABSOLUTE_RE = re.compile(r"^https?:", re.IGNORECASE)
_SRCSET_URL_RE = re.compile(r"[\s,]*(\S*)")


def is_special_reference(reference: Optional[str]) -> bool:
    """Check if a reference must be left untouched (anchors, data:, mailto:, ...)."""
    if not reference:
        return True
    return reference.strip().lower().startswith(SPECIAL_PREFIXES)


def resolve_url(reference: str, base_url: str) -> str:
    """Turn a raw reference found in a document into an absolute URL.

    Raises:
        UnsupportedScheme: for data:, blob: and other non-HTTP references.
        MalformedReference: when the reference cannot be parsed.
    """
    reference = reference.strip()
    lowered = reference.lower()
    if lowered.startswith(("data:", "blob:")):
        raise UnsupportedScheme(f"Unsupported URL scheme: {reference[:40]}")

    if _ABSOLUTE_RE.match(reference):
        resolved = reference
    elif reference.startswith("//"):
        resolved = f"https:{reference}"
    else:
        try:
            resolved = urljoin(base_url, reference)
        except ValueError as e:
            raise MalformedReference(f"Cannot resolve {reference!r}: {e}") from e

    try:
        parsed = urlsplit(resolved)
        # Accessing the port validates the netloc
        parsed.port
    except ValueError as e:
        raise MalformedReference(f"Malformed URL {resolved!r}: {e}") from e

    if parsed.scheme.lower() not in ("http", "https"):
        raise UnsupportedScheme(f"Unsupported URL scheme: {resolved[:40]}")
    if not parsed.hostname:
        raise MalformedReference(f"URL has no host: {resolved!r}")
    return resolved


def url_path(url: str) -> str:
    """Return the path component of an absolute URL."""
    try:
        return urlsplit(url).path
    except ValueError as e:
        raise MalformedReference(f"Malformed URL {url!r}: {e}") from e


def hostname(url: str) -> str:
    """Return the lowercase hostname of an absolute URL."""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError as e:
        raise MalformedReference(f"Malformed URL {url!r}: {e}") from e


def get_domain(url: str) -> str:
    """Return the archive domain of a URL: its hostname without ``www.``."""
    host = hostname(url)
    if host.startswith("www."):
        host = host[4:]
    return host


def format_date(now: Optional[datetime] = None) -> str:
    """Format the archive date partition (YYYY-MM-DD, UTC by default)."""
    if now is None:
        now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%d")


def _extension(path: str) -> str:
    ext = posixpath.splitext(posixpath.basename(path))[1]
    return ext[1:].lower() if len(ext) > 1 else ""


def has_extension(path: str) -> bool:
    """Check if the last segment of a path carries a file extension."""
    return bool(_extension(path))


def sanitize_path(path: str) -> str:
    """Map a URL path to a canonical storage sub-path.

    Query strings and fragments are dropped, duplicate slashes collapsed and
    directory-style paths completed with ``index.html`` so that every stored
    object has a concrete filename.
    """
    path = re.split(r"[?#]", path, maxsplit=1)[0]

    if not path.startswith("/"):
        path = "/" + path

    path = re.sub(r"/+", "/", path)

    if path.endswith("/"):
        path = path + "index.html"
    elif not has_extension(path):
        path = path + "/index.html"

    return path


def is_navigable_path(path: str) -> bool:
    """Check if a same-host path looks like an HTML page worth crawling."""
    return path.endswith(".html") or path.endswith("/") or not has_extension(path)


def page_path(path: str) -> str:
    """Storage path of a navigable page."""
    if path.endswith(".html"):
        return path
    if path.endswith("/"):
        return f"{path}index.html"
    return f"{path}/index.html"


def get_content_type(path: str) -> str:
    """Guess the content type of a stored object from its extension."""
    return CONTENT_TYPES.get(_extension(path), "application/octet-stream")


def get_asset_type(path: str) -> AssetType:
    """Guess the asset type of a resource from its extension."""
    return ASSET_TYPES.get(_extension(path), AssetType.OTHER)


def split_srcset(value: str) -> List[Tuple[str, str]]:
    """Split a srcset attribute into ``(url, descriptor)`` candidates.

    A candidate URL runs up to the next whitespace, so commas inside it
    (as in ``data:`` URIs) do not start a new candidate. A trailing comma
    ends a candidate that has no descriptor.
    """
    candidates = []
    pos = 0
    while pos < len(value):
        match = _SRCSET_URL_RE.match(value, pos)
        url = match.group(1)
        pos = match.end()
        if not url:
            break
        descriptor = ""
        if url.endswith(","):
            url = url.rstrip(",")
        else:
            end = value.find(",", pos)
            if end == -1:
                end = len(value)
            descriptor = value[pos:end].strip()
            pos = end + 1
        candidates.append((url, descriptor))
    return candidates
