"""Base types for the virtual filesystem.

The storage gateway serves directory nodes as DAG-JSON. Each child of a
directory is a link; a DirectoryEntry is one such link decoded into the
few fields the viewer needs.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

# Unixfs "directory" node payload as encoded by the gateway
DIRECTORY_SENTINEL = "CAE"

_DIRECTORY_TYPES = ("dir", "directory", 1)


@dataclass(frozen=True)
class DirectoryEntry:
    """One child of a directory listing.

    Entries are produced fresh by every listing call and never cached.

    Attributes:
        name: Path segment of the child (no slashes)
        is_directory: Whether the child is a directory, None when the link
            does not say (settled by listing the child)
        content_hash: Opaque content identifier, only used for equality
        size: Size in bytes for files, None for directories
    """
    name: str
    is_directory: Optional[bool]
    content_hash: Optional[str] = None
    size: Optional[int] = None

    @classmethod
    def from_link(cls, link: Dict[str, Any]) -> "DirectoryEntry":
        """Decode one entry of a node's ``Links`` array.

        A ``Type`` marker wins when present. Without one, a link carrying
        ``Size`` is a file. Gateway links usually carry only ``Tsize``,
        which both files and directories have, so their kind is left open.

        Raises:
            ValueError, TypeError: If ``Size`` is not a number
        """
        content_hash = link.get("Hash")
        if isinstance(content_hash, dict):
            content_hash = content_hash.get("/")

        size = link.get("Size")
        if "Type" in link:
            is_directory = link["Type"] in _DIRECTORY_TYPES
        else:
            is_directory = False if size is not None else None

        return cls(
            name=str(link.get("Name", "")),
            is_directory=is_directory,
            content_hash=str(content_hash) if content_hash is not None else None,
            size=None if is_directory or size is None else int(size),
        )


class FetchError(Exception):
    """A file could not be fetched from the gateway."""

    def __init__(self, path: str, status: Optional[int] = None, reason: str = ""):
        self.path = path
        self.status = status
        self.reason = reason
        detail = f"HTTP {status}" if status is not None else "transport error"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(f"Failed to load {path}: {detail}")
