"""Blob stores holding archived objects."""

import hashlib
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from site_archive.errors import InvalidKey, StorageFailure

logger = logging.getLogger(__name__)

Body = Union[bytes, str]

META_DIR_NAME = ".meta"


@dataclass
class ObjectInfo:
    """Listing entry of a stored object."""

    key: str
    size: int = 0


@dataclass
class StoredObject:
    """A stored object with its HTTP and custom metadata."""

    key: str
    body: bytes
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    etag: str = ""
    uploaded: str = ""

    @property
    def http_etag(self) -> str:
        """ETag header value (quoted)."""
        return f'"{self.etag}"'


@dataclass
class ListResult:
    """Result of a listing: objects directly matched and grouped prefixes."""

    objects: List[ObjectInfo] = field(default_factory=list)
    delimited_prefixes: List[str] = field(default_factory=list)


def _to_bytes(body: Body) -> bytes:
    return body.encode("utf-8") if isinstance(body, str) else bytes(body)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class BlobStore:
    """Key/value object store with prefix listing.

    Subclasses implement ``put``, ``get`` and ``_iter_objects``; listing with
    a delimiter is shared.
    """

    def put(
        self,
        key: str,
        body: Body,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None:
        raise NotImplementedError

    def get(self, key: str) -> Optional[StoredObject]:
        raise NotImplementedError

    def _iter_objects(self) -> Iterator[ObjectInfo]:
        raise NotImplementedError

    def list(self, prefix: str = "", delimiter: Optional[str] = None) -> ListResult:
        """List keys under a prefix.

        With a delimiter, keys holding the delimiter after the prefix are
        grouped into their first-level common prefix (``prefix + part +
        delimiter``) instead of being returned as objects.
        """
        result = ListResult()
        seen_prefixes = set()
        for info in sorted(self._iter_objects(), key=lambda o: o.key):
            if not info.key.startswith(prefix):
                continue
            rest = info.key[len(prefix):]
            if delimiter and delimiter in rest:
                common = prefix + rest[: rest.index(delimiter) + len(delimiter)]
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    result.delimited_prefixes.append(common)
            else:
                result.objects.append(info)
        return result


class MemoryBlobStore(BlobStore):
    """In-process blob store."""

    def __init__(self):
        self._objects: Dict[str, StoredObject] = {}
        self._lock = threading.Lock()

    def put(self, key, body, content_type=None, metadata=None):
        data = _to_bytes(body)
        stored = StoredObject(
            key=key,
            body=data,
            content_type=content_type,
            metadata=dict(metadata or {}),
            etag=hashlib.md5(data).hexdigest(),
            uploaded=_now(),
        )
        with self._lock:
            self._objects[key] = stored

    def get(self, key):
        with self._lock:
            return self._objects.get(key)

    def _iter_objects(self):
        with self._lock:
            objects = list(self._objects.values())
        for stored in objects:
            yield ObjectInfo(stored.key, len(stored.body))


class FileBlobStore(BlobStore):
    """Blob store persisting objects as files under a root directory.

    Object bodies live at ``root/<key>``; their metadata is kept as JSON under
    ``root/.meta/<key>.json``.
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)
        self.meta_root = self.root / META_DIR_NAME
        try:
            self.meta_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageFailure(f"Cannot create storage directory {self.root}: {e}") from e

    def _check_key(self, key: str) -> List[str]:
        parts = key.split("/")
        if (
            not key
            or key.startswith("/")
            or any(part in ("", ".", "..") for part in parts)
            or parts[0] == META_DIR_NAME
        ):
            raise InvalidKey(f"Invalid storage key: {key!r}")
        return parts

    def _body_path(self, key: str) -> Path:
        return self.root.joinpath(*self._check_key(key))

    def _meta_path(self, key: str) -> Path:
        parts = self._check_key(key)
        return self.meta_root.joinpath(*parts[:-1], parts[-1] + ".json")

    def _write_atomic(self, path: Path, data: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.meta_root, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(data)
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def put(self, key, body, content_type=None, metadata=None):
        data = _to_bytes(body)
        meta = {
            "contentType": content_type,
            "customMetadata": dict(metadata or {}),
            "etag": hashlib.md5(data).hexdigest(),
            "uploaded": _now(),
        }
        try:
            self._write_atomic(self._body_path(key), data)
            self._write_atomic(self._meta_path(key), json.dumps(meta).encode("utf-8"))
        except OSError as e:
            raise StorageFailure(f"Failed to store {key}: {e}") from e
        logger.debug("Stored %s (%d bytes)", key, len(data))

    def get(self, key):
        path = self._body_path(key)
        try:
            if not path.is_file():
                return None
            data = path.read_bytes()
            meta_path = self._meta_path(key)
            meta = json.loads(meta_path.read_text(encoding="utf-8")) if meta_path.is_file() else {}
        except (OSError, ValueError) as e:
            raise StorageFailure(f"Failed to read {key}: {e}") from e
        return StoredObject(
            key=key,
            body=data,
            content_type=meta.get("contentType"),
            metadata=meta.get("customMetadata", {}),
            etag=meta.get("etag") or hashlib.md5(data).hexdigest(),
            uploaded=meta.get("uploaded", ""),
        )

    def _iter_objects(self):
        try:
            for dirpath, dirnames, filenames in os.walk(self.root):
                if Path(dirpath) == self.root and META_DIR_NAME in dirnames:
                    dirnames.remove(META_DIR_NAME)
                for name in filenames:
                    full = Path(dirpath) / name
                    key = full.relative_to(self.root).as_posix()
                    yield ObjectInfo(key, full.stat().st_size)
        except OSError as e:
            raise StorageFailure(f"Failed to list {self.root}: {e}") from e
