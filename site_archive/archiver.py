"""Archive orchestration: crawl a site, rewrite it and store it."""

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from site_archive.crawler import DEFAULT_MAX_DEPTH, Crawler
from site_archive.errors import ArchiveError, ArchiveFailure, StorageFailure
from site_archive.fetcher import DEFAULT_TIMEOUT, Fetcher
from site_archive.models import Asset, AssetType
from site_archive.rewriter import ContentRewriter
from site_archive.storage import BlobStore, FileBlobStore
from site_archive.urls import format_date, get_content_type, get_domain

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


@dataclass
class ArchiveResult:
    """Outcome of one archive run."""

    seed_url: str
    domain: str
    date: str
    preview_url: str
    stored: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)


class Archiver:
    """Archive websites into a blob store under ``{domain}/{date}/``."""

    def __init__(
        self,
        store: BlobStore,
        static_root: str,
        fetcher=None,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_workers: int = DEFAULT_MAX_WORKERS,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize the archiver.

        Args:
            store: Blob store receiving the archived objects.
            static_root: Public base URL the archived objects are served from.
            fetcher: Object with a ``fetch(url)`` method; a
                :class:`~site_archive.fetcher.Fetcher` by default.
            max_depth: Link depth followed from the seed page.
            max_workers: Number of assets fetched and stored concurrently.
            clock: Returns the moment of an archive run; UTC now by default.
        """
        self.store = store
        self.static_root = static_root.rstrip("/")
        self._owns_fetcher = fetcher is None
        self.fetcher = fetcher or Fetcher(timeout=DEFAULT_TIMEOUT, pool_size=max_workers)
        self.max_depth = max_depth
        self.max_workers = max_workers
        self.clock = clock

    @classmethod
    def from_config(cls, config, store: Optional[BlobStore] = None) -> "Archiver":
        """Build an archiver from a :class:`~site_archive.config.Config`."""
        fetcher = Fetcher(
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            user_agent=config.user_agent,
            pool_size=config.max_workers,
        )
        archiver = cls(
            store or FileBlobStore(config.storage_dir),
            config.static_url,
            fetcher=fetcher,
            max_depth=config.max_depth,
            max_workers=config.max_workers,
        )
        archiver._owns_fetcher = True
        return archiver

    def close(self):
        """Release the connections of a fetcher this archiver created."""
        if self._owns_fetcher:
            self.fetcher.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def preview_url(self, domain: str, date: str) -> str:
        """Public URL of the entry page of an archive."""
        return f"{self.static_root}/{domain}/{date}/index.html"

    def archive(self, seed_url: str) -> str:
        """Archive a site and return the preview URL of its entry page."""
        return self.run(seed_url).preview_url

    def run(self, seed_url: str) -> ArchiveResult:
        """Archive a site and report what was stored.

        Raises:
            ArchiveFailure: when discovery fails (e.g. the seed page cannot be
                fetched), nothing is discovered or the entry page cannot be stored.
        """
        try:
            domain = get_domain(seed_url)
        except ArchiveError as e:
            raise ArchiveFailure(seed_url, e) from e
        if not domain:
            raise ArchiveFailure(seed_url, "URL has no host")

        # Fixed for the whole run: used both in keys and in rewritten links
        date = format_date(self.clock() if self.clock else None)
        rewriter = ContentRewriter(self.static_root, domain, date)
        result = ArchiveResult(seed_url, domain, date, self.preview_url(domain, date))

        logger.info("Starting crawl of %s", seed_url)
        try:
            assets = Crawler(seed_url, self.fetcher, max_depth=self.max_depth).discover()
        except ArchiveError as e:
            logger.error("Archive process failed: %s", e)
            raise ArchiveFailure(seed_url, e) from e
        if not assets:
            raise ArchiveFailure(seed_url, "no assets discovered")

        by_type = Counter(asset.type.value for asset in assets)
        logger.info("Found %d assets to process: %s", len(assets), dict(by_type))

        pending = []
        for asset in assets:
            if asset.type == AssetType.IFRAME and asset.is_external:
                logger.info("Skipping external iframe: %s", asset.url)
                result.skipped.append(asset.url)
            else:
                pending.append(asset)

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                pool.submit(self._archive_asset, asset, domain, date, rewriter): asset
                for asset in pending
            }
            for future in as_completed(futures):
                asset = futures[future]
                try:
                    result.stored.append(future.result())
                except ArchiveError as e:
                    logger.error("Failed to process asset: %s (%s)", asset.url, e)
                    result.failed.append((asset.url, str(e)))

        if result.failed:
            logger.warning("%d assets failed to archive", len(result.failed))
        # The seed page is always the first asset discovered
        failed = dict(result.failed)
        if assets[0].url in failed:
            raise ArchiveFailure(seed_url, f"entry page could not be archived: {failed[assets[0].url]}")

        logger.info(
            "Archived %s: %d stored, %d failed, %d skipped",
            seed_url,
            len(result.stored),
            len(result.failed),
            len(result.skipped),
        )
        return result

    def _archive_asset(self, asset: Asset, domain: str, date: str, rewriter: ContentRewriter) -> str:
        """Fetch, rewrite and store one asset; returns its storage key."""
        logger.debug("Processing %s: %s", asset.type.value, asset.url)
        fetched = self.fetcher.fetch(asset.url)

        if asset.type == AssetType.HTML:
            body = rewriter.rewrite_html(fetched.text, asset.url)
        elif asset.type == AssetType.CSS:
            body = rewriter.rewrite_css(fetched.text, asset.url)
        else:
            body = fetched.content

        key = asset.storage_key(domain, date)
        self.store.put(
            key,
            body,
            content_type=get_content_type(asset.path),
            metadata=asset.metadata(domain, date),
        )
        logger.debug("Stored: %s", key)
        return key

    def list_archives(self, domain: str) -> List[str]:
        """Return the archived dates of a domain, most recent first.

        Raises:
            StorageFailure: when the store cannot be listed.
        """
        try:
            listing = self.store.list(prefix=f"{domain}/", delimiter="/")
        except StorageFailure as e:
            logger.error("Failed to list archives for %s: %s", domain, e)
            raise

        dates = set()
        for prefix in listing.delimited_prefixes:
            parts = prefix.split("/")
            if len(parts) > 1 and parts[1]:
                dates.add(parts[1])
        for info in listing.objects:
            parts = info.key.split("/")
            if len(parts) > 2 and parts[1]:
                dates.add(parts[1])
        return sorted(dates, reverse=True)

    def domain_count(self) -> int:
        """Number of archived domains; 0 when the store cannot be listed."""
        try:
            return len(self.store.list(delimiter="/").delimited_prefixes)
        except Exception as e:
            logger.error("Failed to get domain count: %s", e)
            return 0
