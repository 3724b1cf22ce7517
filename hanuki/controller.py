"""
Navigation controller for the viewer.

The controller owns the view state and the project configuration. It is
created once per page, runs the start-up sequence (configuration first,
then the first page) and turns navigation requests from the folder tree,
from markdown links and from an embedding host into renderer transitions.
The displayed file is mirrored in the ``file`` query parameter of the page
URL, so a URL alone is enough to restore the view.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional
from urllib.parse import urlsplit, urlunsplit

from .config import CONFIG_FILENAME, DEFAULT_CONFIG, ProjectConfig, load_config
from .filters import FilterMode
from .messaging import LinkClickEvent, MessageChannel, NavigateEvent
from .paths import decode_from_url, display_name, encode_for_url, normalize
from .renderer import ContentRenderer, ViewState
from .vfs.base import FetchError
from .vfs.client import FilesystemClient
from .vfs.resolver import resolve_link
from .vfs.tree import TreeItem, list_tree_level

logger = logging.getLogger(__name__)

DEFAULT_PAGE = "/ReadMe.md"
FILE_PARAM = "file"


class PageUrl:
    """The addressable URL of the viewer page.

    Setting a file pushes a new history entry; nothing is reloaded.
    """

    def __init__(self, url: str = "/"):
        self.history: List[str] = [url]

    @classmethod
    def from_url(cls, url: str) -> "PageUrl":
        return cls(url)

    @property
    def href(self) -> str:
        return self.history[-1]

    def _params(self) -> List[str]:
        query = urlsplit(self.href).query
        return [param for param in query.split("&") if param]

    @property
    def file(self) -> Optional[str]:
        """Decoded value of the ``file`` parameter, None when absent."""
        for param in self._params():
            key, _, value = param.partition("=")
            if key == FILE_PARAM:
                return decode_from_url(value) or None
        return None

    def set_file(self, path: str) -> str:
        """Push a URL carrying ``path`` as its ``file`` parameter."""
        params = [p for p in self._params() if p.partition("=")[0] != FILE_PARAM]
        params.append(f"{FILE_PARAM}={encode_for_url(path)}")

        parts = urlsplit(self.href)
        new_url = urlunsplit((parts.scheme, parts.netloc, parts.path, "&".join(params), parts.fragment))
        if new_url != self.href:
            self.history.append(new_url)
        return new_url


@dataclass
class PageChrome:
    """Header elements driven by the project configuration."""
    site_title: str = DEFAULT_CONFIG.project.name
    page_title: str = ""
    repository_url: Optional[str] = None
    icon_url: Optional[str] = None


class NavigationController:
    """Owns the ViewState and the configuration of one viewer page.

    Args:
        client: Gateway client
        url: Page URL (defaults to a bare "/")
        host: Optional embedding page; notified through
            ``on_site_sub_page_changed(path, name)`` or the legacy
            ``OnSiteSubPageChanged``
        strict_ordering: Drop results of navigations that were overtaken
            by a newer one. Off by default: the last load to finish wins.
        channel: Message channel shared with the rendered documents
    """

    def __init__(
        self,
        client: FilesystemClient,
        url: Optional[PageUrl] = None,
        host: Any = None,
        strict_ordering: bool = False,
        channel: Optional[MessageChannel] = None,
    ):
        self.client = client
        self.url = url or PageUrl()
        self.host = host
        self.strict_ordering = strict_ordering
        self.state = ViewState()
        self.renderer = ContentRenderer(client, self.state)
        self.config: ProjectConfig = DEFAULT_CONFIG
        self.gitignore: Optional[str] = None
        self.chrome = PageChrome()
        self.channel = channel or MessageChannel()
        self._generation = 0

        self.channel.register("markdown-link-click", self._on_link_click)
        self.channel.register("navigate", self._on_navigate)

    # ------------------------------------------------------------------
    # Start-up
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Load the configuration, then display the first page."""
        self.config = await self.load_config()
        self.gitignore = await self._fetch_optional("/.gitignore")
        self.update_chrome()
        await self.render_project_page()

    async def load_config(self) -> ProjectConfig:
        """Fetch and parse the project configuration (defaults on failure)."""
        text = await self._fetch_optional(f"/{CONFIG_FILENAME}")
        config = load_config(text)
        logger.info(f"Configuration loaded for {config.project.name}")
        return config

    async def _fetch_optional(self, path: str) -> Optional[str]:
        try:
            return await self.client.fetch_file_contents(path)
        except FetchError as e:
            logger.debug(f"{path} not available: {e}")
            return None

    def update_chrome(self) -> None:
        project = self.config.project
        self.chrome.site_title = project.name
        self.chrome.repository_url = project.urls.repository or None
        self.chrome.icon_url = self.client.file_url(project.icon) if project.icon else None

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def render_project_page(self) -> None:
        """Display the file named by the URL, or the default page."""
        file_path = self.url.file
        if not await self.client.resource_exists(file_path):
            logger.debug(f"{file_path} is not a project resource, using {DEFAULT_PAGE}")
            file_path = DEFAULT_PAGE

        self.url.set_file(file_path)
        await self.load_project_page(file_path)

    async def load_project_page(self, path: str) -> bool:
        """Show a file and mirror it in the page URL.

        Returns:
            True if the file is now on display
        """
        self._generation += 1
        generation = self._generation

        def is_current() -> bool:
            return not self.strict_ordering or generation == self._generation

        file_path = self.renderer.resolve(path)
        loaded = await self.renderer.load_project_page(file_path, is_current)
        if is_current():
            self.url.set_file(file_path)
        return loaded

    async def change_site_subpage(self, file: str, name: str = "") -> bool:
        """Navigate to a file chosen in the folder tree or by the host."""
        if not name:
            name = display_name(file)
        logger.info(f"Changing site page to: {file}")

        file = normalize(f"/{file}")
        loaded = await self.load_project_page(file)
        self.chrome.page_title = name
        self._notify_host(file, name)
        return loaded

    async def handle_link_click(self, href: str) -> Optional[str]:
        """Follow a link clicked inside a markdown document.

        Returns:
            The path navigated to, or None when the link is not ours
        """
        target = await resolve_link(self.client, href, self.state.current_path)
        if target is None:
            logger.debug(f"Ignoring link {href!r}")
            return None

        await self.load_project_page(target)
        return target

    def _notify_host(self, path: str, name: str) -> None:
        if self.host is None:
            return
        callback = getattr(self.host, "on_site_sub_page_changed", None)
        if not callable(callback):
            callback = getattr(self.host, "OnSiteSubPageChanged", None)
        if callable(callback):
            callback(path, name)

    async def _on_link_click(self, event: LinkClickEvent) -> Optional[str]:
        return await self.handle_link_click(event.path)

    async def _on_navigate(self, event: NavigateEvent) -> bool:
        return await self.change_site_subpage(event.path, event.name)

    # ------------------------------------------------------------------
    # Folder tree
    # ------------------------------------------------------------------

    async def list_tree(self, dir_path: str = "/") -> Optional[List[TreeItem]]:
        """One level of the folder tree, filtered for display."""
        return await list_tree_level(
            self.client,
            dir_path,
            self.config,
            self.gitignore,
            FilterMode.TREE_VIEW,
        )
