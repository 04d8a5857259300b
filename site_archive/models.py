"""Data models shared by the crawler and the archiver."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class AssetType(str, Enum):
    """Kind of a discovered resource."""

    HTML = "html"
    CSS = "css"
    JS = "js"
    IMAGE = "image"
    FONT = "font"
    IFRAME = "iframe"
    ICON = "icon"
    MEDIA = "media"
    JSON = "json"
    XML = "xml"
    PDF = "pdf"
    OTHER = "other"


@dataclass
class Asset:
    """A resource discovered while crawling a site."""

    url: str
    type: AssetType
    path: str
    is_external: bool = False
    parent_url: Optional[str] = None
    # Discovery depth; not persisted.
    depth: int = field(default=0, compare=False)

    @property
    def is_text(self) -> bool:
        """Whether the asset is rewritten before it is stored."""
        return self.type in (AssetType.HTML, AssetType.CSS)

    def storage_key(self, domain: str, date: str) -> str:
        """Blob store key of this asset inside a date partition."""
        return f"{domain}/{date}{self.path}"

    def metadata(self, domain: str, date: str) -> Dict[str, str]:
        """Custom metadata stored alongside the archived bytes."""
        return {
            "originalUrl": self.url,
            "archivedAt": date,
            "assetType": self.type.value,
            "domain": domain,
        }
