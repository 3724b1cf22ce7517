"""
hanuki - a file browser for project folders published on IPFS.

Main API:
    from hanuki.controller import NavigationController
    from hanuki.vfs import FilesystemClient

    # Browse a published project through a gateway
    async with FilesystemClient("http://127.0.0.1:8080/ipfs/<cid>") as client:
        controller = NavigationController(client)
        await controller.start()              # config, then the first page
        await controller.change_site_subpage("docs/guide.md")

    # Publish a project folder
    from hanuki.publisher import IpfsPublisher
    cid = await IpfsPublisher("http://localhost:5001").publish("my-project")
"""

from .config import DEFAULT_CONFIG, ProjectConfig, load_config
from .controller import NavigationController
from .vfs import FilesystemClient

__version__ = "0.1.0"
__all__ = ["NavigationController", "FilesystemClient", "ProjectConfig", "DEFAULT_CONFIG", "load_config"]
