"""
Path helpers for project paths.

A project path always uses forward slashes. Depending on the call site it
is either rooted (``/docs/index.md``) or fetch-relative (``docs/index.md``);
these helpers never guess which one a caller holds.
"""

import re
from typing import Optional, Tuple
from urllib.parse import quote, unquote

# Characters encodeURIComponent leaves untouched besides alphanumerics and "-_.~"
_SEGMENT_SAFE = "!*'()"

_REPEATED_SLASHES = re.compile(r"/{2,}")


def normalize(path: str) -> str:
    """Collapse runs of slashes. Leading/trailing slashes are kept as is."""
    if not path:
        return ""
    return _REPEATED_SLASHES.sub("/", path)


def encode_for_url(path: Optional[str]) -> Optional[str]:
    """Percent-encode every segment of a path independently."""
    if path is None:
        return None
    return "/".join(quote(segment, safe=_SEGMENT_SAFE) for segment in path.split("/"))


def decode_from_url(path: Optional[str]) -> Optional[str]:
    """Inverse of :func:`encode_for_url`."""
    if path is None:
        return None
    return "/".join(unquote(segment) for segment in path.split("/"))


def relativize(full_path: str, project_root: str) -> str:
    """
    Strip the project root prefix from a path.

    Returns the normalized path unchanged when it does not start with
    ``normalize(project_root) + "/"``; that simply means the path is
    already relative to the root.
    """
    if not full_path:
        return ""

    normalized_full = normalize(full_path)
    prefix = f"{normalize(project_root)}/"

    if normalized_full.startswith(prefix):
        return normalized_full[len(prefix):]

    return normalized_full


def resolve_absolute(path: str, current_dir: str) -> str:
    """
    Resolve a path against the directory currently displayed.

    Rooted paths are only normalized. Relative paths are joined onto
    ``current_dir``; ``.`` segments are dropped and ``..`` steps up, never
    above the root.
    """
    if path.startswith("/"):
        combined = path
    else:
        combined = f"/{current_dir}/{path}"

    parts = []
    for part in normalize(combined).split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if parts:
                parts.pop()
            continue
        parts.append(part)

    resolved = "/" + "/".join(parts)
    if combined.endswith("/") and parts:
        resolved += "/"
    return resolved


def extension(path: str) -> str:
    """
    Return the text after the last dot of the final segment.

    Dotfiles (``.gitignore``) and names without a dot have no extension.
    Callers lower-case the result themselves when they need to.
    """
    leaf = path.rsplit("/", 1)[-1]
    index = leaf.rfind(".")
    if index <= 0:
        return ""
    return leaf[index + 1:]


def parent_dir(path: str) -> str:
    """Directory part of a path (``/docs/a.md`` -> ``/docs``)."""
    return split_leaf(path)[0]


def split_leaf(path: str) -> Tuple[str, str]:
    """Split a path into ``(parent, leaf)``."""
    normalized = normalize(path)
    if "/" not in normalized:
        return "", normalized
    parent, leaf = normalized.rsplit("/", 1)
    return parent, leaf


def display_name(path: str) -> str:
    """File name without its extension, used as a page title."""
    leaf = split_leaf(path)[1]
    return leaf.split(".")[0]
