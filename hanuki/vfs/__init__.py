"""Virtual File System over a content-addressed storage gateway.

The viewer never reads the project from disk. It browses the published
directory tree through the gateway's HTTP surface:

    ```
    GET <origin>/<path>?format=dag-json     # directory listing
    GET <origin>/<path>                     # file contents
    ```

Components:

    - DirectoryEntry: one child of a directory listing
    - FilesystemClient: listing, folder checks, existence checks, file fetches, URLs
    - list_tree_level / walk_tree: the folder tree, filtered for display
    - translate_link / resolve_link: markdown link targets to project paths

Usage Example:

    ```python
    from hanuki.vfs import FilesystemClient

    async with FilesystemClient("http://127.0.0.1:8080/ipfs/<cid>") as client:
        entries = await client.list_directory("/")
        for entry in entries or []:
            print(entry.name, entry.is_directory)

        if await client.resource_exists("/ReadMe.md"):
            text = await client.fetch_file_contents("/ReadMe.md")
    ```
"""

from hanuki.vfs.base import DirectoryEntry, FetchError, DIRECTORY_SENTINEL
from hanuki.vfs.client import FilesystemClient
from hanuki.vfs.resolver import translate_link, resolve_link
from hanuki.vfs.tree import TreeItem, list_tree_level, walk_tree

__all__ = [
    # Main entry point
    "FilesystemClient",
    # Data
    "DirectoryEntry",
    "FetchError",
    "DIRECTORY_SENTINEL",
    # Folder tree
    "TreeItem",
    "list_tree_level",
    "walk_tree",
    # Link resolution
    "translate_link",
    "resolve_link",
]
