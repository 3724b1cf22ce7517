"""Folder tree listing.

The folder tree shows one directory level at a time: folders first, then
files, each group in listing order. Levels are fetched when expanded and
never cached. Links that do not say whether they are folders are
settled by fetching the child node.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from hanuki.config import ProjectConfig
from hanuki.filters import FilterMode, filter_entries
from hanuki.paths import normalize
from hanuki.vfs.client import FilesystemClient

logger = logging.getLogger(__name__)

# Names that never denote a child
_SKIPPED_NAMES = ("", ".", "/")


@dataclass
class TreeItem:
    """A row of the folder tree."""
    path: str
    name: str
    is_directory: bool
    children: List["TreeItem"] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "name": self.name,
            "is_directory": self.is_directory,
            "children": [child.to_dict() for child in self.children],
        }


async def list_tree_level(
    client: FilesystemClient,
    dir_path: str,
    config: ProjectConfig,
    gitignore: Optional[str] = None,
    mode: FilterMode = FilterMode.TREE_VIEW,
) -> Optional[List[TreeItem]]:
    """List one level of the folder tree.

    Returns:
        Folders then files, or None if the directory could not be listed
    """
    entries = await client.list_directory(dir_path)
    if entries is None:
        return None

    entries = [entry for entry in entries if entry.name not in _SKIPPED_NAMES]
    visible = filter_entries(entries, dir_path, config, mode, gitignore)

    folders = []
    files = []
    for entry in visible:
        path = normalize(f"/{dir_path}/{entry.name}")
        is_directory = entry.is_directory
        if is_directory is None:
            is_directory = await client.is_directory(path)
            if is_directory is None:
                logger.warning(f"Could not tell whether {path} is a folder, skipping it")
                continue

        item = TreeItem(path=path, name=entry.name, is_directory=is_directory)
        (folders if is_directory else files).append(item)

    return folders + files


async def walk_tree(
    client: FilesystemClient,
    config: ProjectConfig,
    dir_path: str = "/",
    max_depth: Optional[int] = None,
    gitignore: Optional[str] = None,
    mode: FilterMode = FilterMode.TREE_VIEW,
) -> List[TreeItem]:
    """Expand the folder tree recursively.

    Args:
        client: Gateway client
        config: Project configuration
        dir_path: Directory to start from
        max_depth: Levels to expand (None for unlimited)
        gitignore: Optional .gitignore content
        mode: Filter policy to apply

    Returns:
        Top level items with their children filled in
    """
    items = await list_tree_level(client, dir_path, config, gitignore, mode)
    if items is None:
        logger.warning(f"Could not list {dir_path}")
        return []

    if max_depth is not None and max_depth <= 1:
        return items

    next_depth = None if max_depth is None else max_depth - 1
    for item in items:
        if item.is_directory:
            item.children = await walk_tree(
                client, config, item.path, next_depth, gitignore, mode
            )
    return items
