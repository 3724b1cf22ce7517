"""HTTP client for the content-addressed storage gateway.

This is the only place that talks to the gateway and the only place that
knows how it encodes directory listings. Absence is reported as data
(``None`` or ``[]``); only file fetches raise.
"""

import json
import logging
from typing import List, Optional

import httpx

from hanuki.paths import encode_for_url, normalize, relativize, split_leaf
from hanuki.vfs.base import DIRECTORY_SENTINEL, DirectoryEntry, FetchError

logger = logging.getLogger(__name__)

DAG_JSON_MEDIA_TYPE = "application/vnd.ipld.dag-json"


class FilesystemClient:
    """Read-only view of a project published on a storage gateway.

    Nothing is cached: the tree can change on the gateway at any time, so
    every call goes back to the network.

    Attributes:
        origin: Base URL the project is served from, e.g.
            ``http://127.0.0.1:8080/ipfs/<cid>``
        project_root: Mount point of the project files under the origin
    """

    def __init__(
        self,
        origin: str,
        project_root: str = "/",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            origin: Base URL of the deployment
            project_root: Path of the project files under the origin
            timeout: Request timeout in seconds
            transport: Optional transport (tests use httpx.MockTransport)
        """
        self.origin = origin.rstrip("/")
        self.project_root = project_root
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def __aenter__(self) -> "FilesystemClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def file_url(self, path: str) -> str:
        """Absolute URL of a project path."""
        safe_path = encode_for_url(relativize(path, self.project_root))
        full_path = normalize(f"/{self.project_root}/{safe_path}")
        return f"{self.origin}{full_path}"

    async def _fetch_node(self, path: str) -> Optional[dict]:
        """Fetch the DAG-JSON node of a path, None if unavailable."""
        url = f"{self.file_url(path)}?format=dag-json"
        try:
            response = await self._client.get(url, headers={"Accept": DAG_JSON_MEDIA_TYPE})
        except httpx.HTTPError as e:
            logger.error(f"Failed to list {path or '/'}: {e}")
            return None

        if not response.is_success:
            logger.debug(f"Listing {path or '/'} returned HTTP {response.status_code}")
            return None

        try:
            node = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Failed to decode listing of {path or '/'}: {e}")
            return None

        if not isinstance(node, dict):
            logger.error(f"Unexpected listing format for {path or '/'}")
            return None
        return node

    @staticmethod
    def _is_directory_node(node: dict) -> bool:
        data = node.get("Data")
        payload = data.get("/", {}) if isinstance(data, dict) else {}
        return isinstance(payload, dict) and payload.get("bytes") == DIRECTORY_SENTINEL

    async def list_directory(self, path: str) -> Optional[List[DirectoryEntry]]:
        """List the children of a directory.

        Returns:
            The entries, ``[]`` if the node is not a directory or is empty,
            or None if the listing could not be fetched or decoded
        """
        node = await self._fetch_node(path)
        if node is None:
            return None

        if not self._is_directory_node(node):
            return []

        links = node.get("Links") or []
        try:
            return [DirectoryEntry.from_link(link) for link in links if isinstance(link, dict)]
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to decode listing of {path or '/'}: {e}")
            return None

    async def is_directory(self, path: str) -> Optional[bool]:
        """Tell whether a path is a directory by fetching its node.

        Returns:
            True or False, or None if the node could not be fetched
        """
        node = await self._fetch_node(path)
        if node is None:
            return None
        return self._is_directory_node(node)

    async def resource_exists(self, path: Optional[str]) -> bool:
        """Check whether a path names an entry of its parent directory."""
        if not path:
            return False

        parent, leaf = split_leaf(relativize(path, self.project_root))
        if not leaf:
            return False

        entries = await self.list_directory(parent)
        if entries is None:
            return False
        return any(entry.name == leaf for entry in entries)

    async def fetch_file_contents(self, path: str) -> str:
        """Fetch a file as text.

        Raises:
            FetchError: On a transport error or a non-2xx response
        """
        try:
            response = await self._client.get(self.file_url(path))
        except httpx.HTTPError as e:
            raise FetchError(path, reason=str(e)) from e

        if not response.is_success:
            raise FetchError(path, response.status_code, response.reason_phrase)

        return response.text
