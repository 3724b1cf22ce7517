"""
Include/ignore filtering for project paths.

Two independent policies exist: what the folder tree shows and what gets
published. Both evaluate include patterns before ignore patterns, so an
include always wins. hanuki's own installed files bypass the patterns:
they are hidden from the tree and always published.
"""

import logging
import re
from enum import Enum
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple

from .config import ProjectConfig
from .paths import normalize

logger = logging.getLogger(__name__)

# Files installed by `hanuki init`
RESERVED_PATHS = ("_hanuki", "index.html", "hanuki.toml")


class FilterMode(Enum):
    """Which policy a path is checked against."""
    TREE_VIEW = "tree-view"
    IPFS_PUBLISHING = "ipfs-publishing"


def is_reserved(path: str) -> bool:
    """True if the path is one of hanuki's installed files or under one."""
    relative = normalize(path).strip("/")
    return any(
        relative == reserved or relative.startswith(f"{reserved}/")
        for reserved in RESERVED_PATHS
    )


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> Pattern:
    """
    Translate a glob pattern into an anchored regular expression.

    ``*`` matches any run of characters (slashes included), ``?`` a single
    character, and a trailing ``/**`` matches the path itself or anything
    below it.
    """
    pattern = normalize(pattern).lstrip("/")

    suffix = ""
    if pattern.endswith("/**"):
        pattern = pattern[:-3]
        suffix = "(?:/.*)?"

    parts = []
    for char in pattern:
        if char == "*":
            # consecutive stars collapse into one wildcard
            if parts and parts[-1] == ".*":
                continue
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))

    return re.compile("^" + "".join(parts) + suffix + "$")


def matches_any(path: str, patterns: Iterable[str]) -> bool:
    """True if the (project-relative) path matches one of the patterns."""
    return any(glob_to_regex(pattern).match(path) for pattern in patterns)


def gitignore_to_globs(text: Optional[str]) -> Tuple[List[str], List[str]]:
    """
    Translate .gitignore content into (include, ignore) glob lists.

    Negated lines (``!keep.log``) become include patterns. A name without
    a slash matches at any depth.
    """
    include: List[str] = []
    ignore: List[str] = []
    if not text:
        return include, ignore

    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        target = ignore
        if line.startswith("!"):
            target = include
            line = line[1:]

        line = line.rstrip("/")
        if not line:
            continue

        if "/" in line.lstrip("/"):
            base = line.lstrip("/")
            target.extend([base, f"{base}/**"])
        elif line.startswith("/"):
            base = line[1:]
            target.extend([base, f"{base}/**"])
        else:
            target.extend([line, f"{line}/**", f"*/{line}", f"*/{line}/**"])

    return include, ignore


def effective_patterns(
    config: ProjectConfig,
    mode: FilterMode,
    gitignore: Optional[str] = None,
) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """
    Compute the (include, ignore) lists for a mode.

    In publishing mode with ``use_treeview_ignore`` set, the tree view lists
    come first, followed by the publishing lists.
    """
    tree = config.tree_view
    publishing = config.ipfs_publishing

    if mode is FilterMode.TREE_VIEW:
        include = list(tree.include)
        ignore = list(tree.ignore)
        use_gitignore = tree.use_gitignore
    else:
        include = []
        ignore = []
        if publishing.use_tree_view_ignore:
            include.extend(tree.include)
            ignore.extend(tree.ignore)
        include.extend(publishing.include)
        ignore.extend(publishing.ignore)
        use_gitignore = publishing.use_gitignore

    if use_gitignore and gitignore:
        git_include, git_ignore = gitignore_to_globs(gitignore)
        include.extend(git_include)
        ignore.extend(git_ignore)

    return tuple(include), tuple(ignore)


def should_ignore(
    path: str,
    config: ProjectConfig,
    mode: FilterMode,
    gitignore: Optional[str] = None,
) -> bool:
    """
    Decide whether a path is filtered out under a mode.

    Args:
        path: Project path, rooted or not
        config: Project configuration
        mode: Policy to apply
        gitignore: Optional .gitignore content

    Returns:
        True if the path should be hidden (tree view) or skipped (publishing)
    """
    if is_reserved(path):
        return mode is FilterMode.TREE_VIEW

    relative = normalize(path).strip("/")
    include, ignore = effective_patterns(config, mode, gitignore)

    if matches_any(relative, include):
        return False
    if matches_any(relative, ignore):
        return True
    return False


def filter_entries(
    entries: Optional[Sequence],
    dir_path: str,
    config: ProjectConfig,
    mode: FilterMode,
    gitignore: Optional[str] = None,
) -> List:
    """Keep the directory entries that are not ignored."""
    if not entries:
        return []

    kept = []
    for entry in entries:
        full_path = normalize(f"{dir_path}/{entry.name}")
        if should_ignore(full_path, config, mode, gitignore):
            logger.debug(f"Filtered out {full_path} ({mode.value})")
            continue
        kept.append(entry)
    return kept
