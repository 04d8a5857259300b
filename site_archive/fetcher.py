"""HTTP fetching for the crawler and the archiver."""

import logging
from dataclasses import dataclass
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from site_archive.errors import FetchFailure

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 Archive Bot"
DEFAULT_TIMEOUT = 30


@dataclass
class Fetched:
    """Body and headers of a successful GET."""

    url: str
    content: bytes
    content_type: str = ""
    encoding: Optional[str] = None

    @property
    def text(self) -> str:
        """Decode the body, falling back to UTF-8 when no charset was sent."""
        encoding = self.encoding or "utf-8"
        try:
            return self.content.decode(encoding, errors="replace")
        except LookupError:
            return self.content.decode("utf-8", errors="replace")


class Fetcher:
    """Thin wrapper around a ``requests.Session`` with timeouts and retries."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = 2,
        user_agent: str = DEFAULT_USER_AGENT,
        pool_size: int = 10,
    ):
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": user_agent})
        retry = Retry(
            total=max_retries,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods={"GET", "HEAD"},
            raise_on_status=False,
        )
        adapter = HTTPAdapter(
            max_retries=retry, pool_connections=pool_size, pool_maxsize=pool_size
        )
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def fetch(self, url: str) -> Fetched:
        """GET a URL.

        Raises:
            FetchFailure: on network errors, timeouts and non-2xx responses.
        """
        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            raise FetchFailure(url, f"HTTP {status}", status_code=status) from e
        except requests.exceptions.Timeout as e:
            raise FetchFailure(url, f"timed out after {self.timeout}s") from e
        except requests.exceptions.RequestException as e:
            raise FetchFailure(url, str(e)) from e

        content_type = response.headers.get("Content-Type", "")
        # requests assumes ISO-8859-1 for text/* without a charset
        encoding = response.encoding if "charset" in content_type.lower() else None
        logger.debug("Fetched %s (%d bytes)", url, len(response.content))
        return Fetched(url, response.content, content_type, encoding)

    def close(self):
        """Release pooled connections."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
