"""
Publishing a project directory to IPFS.

The project is uploaded through the Kubo RPC API (``/api/v0/add``) with
``wrap-with-directory`` so the whole tree gets a single root identifier.
Only after the daemon confirms the upload is the identifier written back
into hanuki.toml.
"""

import json
import logging
import os
from contextlib import ExitStack
from pathlib import Path
from typing import Callable, List, Optional, Union
from urllib.parse import quote

import httpx

from .config import CONFIG_FILENAME, ProjectConfig, load_config_file, record_publication
from .filters import FilterMode, effective_patterns, should_ignore

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:5001"
API_VERSION = "v0"

# never published, whatever the patterns say
SKIPPED_DIRS = (".git",)


class PublishError(Exception):
    """Publishing failed; the configuration file was left untouched."""


def read_gitignore(project_dir: Path) -> Optional[str]:
    path = Path(project_dir) / ".gitignore"
    if not path.is_file():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Could not read {path}: {e}")
        return None


def collect_files(
    project_dir: Union[str, Path],
    config: ProjectConfig,
    gitignore: Optional[str] = None,
) -> List[str]:
    """
    List the files to publish, as sorted POSIX paths relative to the project.

    Ignored directories are not descended into unless an include pattern
    could bring some of their content back.
    """
    project_dir = Path(project_dir)
    mode = FilterMode.IPFS_PUBLISHING
    files: List[str] = []

    # with include patterns around, pruning could drop re-included files
    include, _ = effective_patterns(config, mode, gitignore)
    can_prune = not include

    for root, dirnames, filenames in os.walk(project_dir):
        dirnames[:] = [name for name in dirnames if name not in SKIPPED_DIRS]
        relative_root = Path(root).relative_to(project_dir).as_posix()
        prefix = "" if relative_root == "." else f"{relative_root}/"

        if can_prune:
            dirnames[:] = [
                name for name in dirnames
                if not should_ignore(f"{prefix}{name}", config, mode, gitignore)
            ]
        dirnames.sort()

        for name in filenames:
            relative = f"{prefix}{name}"
            if not should_ignore(relative, config, mode, gitignore):
                files.append(relative)

    return sorted(files)


def _parent_dirs(files: List[str]) -> List[str]:
    dirs = set()
    for relative in files:
        parts = relative.split("/")[:-1]
        for depth in range(1, len(parts) + 1):
            dirs.add("/".join(parts[:depth]))
    return sorted(dirs)


class IpfsPublisher:
    """Uploads a project to an IPFS daemon over its RPC API."""

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the publisher.

        Args:
            api_url: Base URL of the Kubo RPC API
            timeout: Upload timeout in seconds
            transport: Optional transport (tests use httpx.MockTransport)
        """
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.api_url}/api/{API_VERSION}",
            timeout=self.timeout,
            transport=self.transport,
        )

    async def connect(self) -> str:
        """
        Check that the daemon answers.

        Returns:
            The daemon version

        Raises:
            PublishError: If the daemon cannot be reached
        """
        try:
            async with self._client() as client:
                response = await client.post("/version")
                response.raise_for_status()
                version = response.json().get("Version", "unknown")
        except (httpx.HTTPError, ValueError) as e:
            raise PublishError(f"Failed to connect to IPFS at {self.api_url}: {e}") from e

        logger.info(f"Connected to IPFS version: {version}")
        return version

    async def add_directory(
        self,
        project_dir: Union[str, Path],
        files: List[str],
        progress: Optional[Callable[[str], None]] = None,
    ) -> str:
        """
        Upload files, pinned, under one wrapping directory.

        Args:
            project_dir: Project directory the paths are relative to
            files: Relative POSIX paths to upload
            progress: Called with the name of every entry the daemon added

        Returns:
            Root identifier of the uploaded tree

        Raises:
            PublishError: On transport errors, timeouts or a missing root
        """
        project_dir = Path(project_dir)
        params = {
            "pin": "true",
            "wrap-with-directory": "true",
            "recursive": "true",
        }

        with ExitStack() as stack:
            parts = [
                ("file", (quote(name, safe=""), b"", "application/x-directory"))
                for name in _parent_dirs(files)
            ]
            for relative in files:
                handle = stack.enter_context(open(project_dir / relative, "rb"))
                parts.append(("file", (quote(relative, safe=""), handle, "application/octet-stream")))

            try:
                async with self._client() as client:
                    response = await client.post("/add", params=params, files=parts)
                    response.raise_for_status()
            except httpx.TimeoutException as e:
                raise PublishError(f"Upload timed out after {self.timeout}s") from e
            except httpx.HTTPError as e:
                raise PublishError(f"Error adding to IPFS: {e}") from e

        root_cid = None
        for line in response.text.splitlines():
            if not line.strip():
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError as e:
                raise PublishError(f"Unexpected response from IPFS: {line!r}") from e
            if progress is not None:
                progress(entry.get("Name", ""))
            if entry.get("Name") == "":
                root_cid = entry.get("Hash")

        if not root_cid:
            raise PublishError("No CID returned for directory")

        logger.info(f"Directory successfully added to IPFS with CID: {root_cid}")
        return root_cid

    async def publish(
        self,
        project_dir: Union[str, Path],
        progress: Optional[Callable[[str], None]] = None,
    ) -> str:
        """
        Publish a project and record the identifier in its configuration.

        Returns:
            Root identifier of the published project
        """
        project_dir = Path(project_dir)
        config_path = project_dir / CONFIG_FILENAME

        await self.connect()

        config = load_config_file(config_path)
        files = collect_files(project_dir, config, read_gitignore(project_dir))
        if not files:
            raise PublishError(f"Nothing to publish in {project_dir}")
        logger.info(f"Adding {len(files)} files from {project_dir}")

        cid = await self.add_directory(project_dir, files, progress)

        record_publication(config_path, cid, API_VERSION)
        return cid
