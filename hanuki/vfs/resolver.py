"""Resolution of links clicked inside rendered markdown.

Markdown pages link to other project files in three ways:

- path style: ``docs/setup.md``, ``./foo``, ``../index.md``
- router style: ``#/./foo``, the markdown renderer's form for "file under
  this directory"
- bare fragments: ``#/docs/setup.md`` or ``#setup``

All three are turned into project paths and resolved against the directory
of the page on display. A target that does not exist but has a ``.md``
sibling resolves to the sibling.
"""

import logging
from typing import Optional

from hanuki.paths import decode_from_url, parent_dir, resolve_absolute
from hanuki.vfs.client import FilesystemClient

logger = logging.getLogger(__name__)

_EXTERNAL_PREFIXES = ("http:", "https:", "mailto:", "ftp:", "//", "data:", "javascript:")


def translate_link(href: Optional[str]) -> Optional[str]:
    """Turn an href into a (possibly relative) project path.

    Returns:
        The path, or None for links that must not be intercepted
        (external links, query-style routes, empty links)
    """
    if not href:
        return None

    if href.lower().startswith(_EXTERNAL_PREFIXES):
        return None

    if href.startswith("#/."):
        path = href[2:]
    elif href.startswith("#"):
        path = href[1:]
    else:
        path = href

    # route parameters belong to the markdown renderer itself
    if not path or "=" in path:
        return None

    return decode_from_url(path)


async def resolve_link(
    client: FilesystemClient,
    href: Optional[str],
    current_path: Optional[str],
) -> Optional[str]:
    """Resolve a clicked link to an absolute project path.

    Args:
        client: Gateway client used for the existence checks
        href: Link target as written in the document
        current_path: Path of the page on display

    Returns:
        Absolute project path, or None if the link is not handled here
    """
    path = translate_link(href)
    if path is None:
        return None

    current_dir = parent_dir(current_path or "/")
    full_path = resolve_absolute(path, current_dir)

    if not await client.resource_exists(full_path):
        if await client.resource_exists(f"{full_path}.md"):
            full_path = f"{full_path}.md"

    logger.debug(f"Markdown link clicked: {href}, navigating to: {full_path}")
    return full_path
