"""
Rendering of project files.

Every file shown by the viewer goes through one of six renderers, chosen by
extension from a single lookup table. Exactly one view is visible at a time;
a failed load leaves the previous view on display and adds an error block
instead.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Union

import markdown
from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name, get_lexer_for_filename
from pygments.util import ClassNotFound

from .paths import extension, parent_dir, relativize, resolve_absolute
from .vfs.base import FetchError
from .vfs.client import FilesystemClient

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["fenced_code", "tables", "toc"]


class RendererKind(Enum):
    """The views a file can be shown in."""
    CODE = "code"
    MARKDOWN = "markdown"
    HTML = "html"
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"


# Video is listed before audio, so "ogg" opens as video
_KIND_BY_EXTENSION: Dict[str, RendererKind] = {}
for _kind, _extensions in (
    (RendererKind.MARKDOWN, ("md",)),
    (RendererKind.HTML, ("html", "htm")),
    (RendererKind.IMAGE, ("jpg", "jpeg", "png", "gif", "svg", "webp")),
    (RendererKind.VIDEO, ("mp4", "webm", "ogg", "mov")),
    (RendererKind.AUDIO, ("mp3", "wav", "ogg", "flac")),
):
    for _ext in _extensions:
        _KIND_BY_EXTENSION.setdefault(_ext, _kind)


def classify(path: str) -> RendererKind:
    """Pick the renderer for a path. Unknown extensions render as code."""
    return _KIND_BY_EXTENSION.get(extension(path).lower(), RendererKind.CODE)


# ============================================================================
# Views
# ============================================================================

@dataclass
class CodeView:
    """Syntax highlighted source text."""
    language: str
    text: str
    html: str


@dataclass
class MarkdownView:
    """Rendered markdown document.

    Attributes:
        base_path: URL the document's relative links are based on
        homepage: Document path relative to the project root
        html: Rendered document
    """
    base_path: str
    homepage: str
    html: str


@dataclass
class HtmlView:
    """An HTML page shown in a sandboxed frame."""
    src: str


@dataclass
class ImageView:
    src: str


@dataclass
class VideoView:
    src: str
    controls: bool = True


@dataclass
class AudioView:
    src: str
    controls: bool = True


View = Union[CodeView, MarkdownView, HtmlView, ImageView, VideoView, AudioView]


@dataclass
class ErrorBlock:
    """An inline error shown in the content area."""
    kind: RendererKind
    path: str
    message: str
    dismissed: bool = False

    def dismiss(self) -> None:
        self.dismissed = True


@dataclass
class ViewState:
    """The resource on display. Owned and mutated by the controller."""
    current_path: Optional[str] = None
    active_kind: Optional[RendererKind] = None


class RenderError(Exception):
    """A view could not be built for a file."""


# ============================================================================
# Black-box renderers
# ============================================================================

def render_markdown(text: str) -> str:
    """Convert markdown text to HTML."""
    return markdown.markdown(text, extensions=MARKDOWN_EXTENSIONS)


def highlight_code(text: str, path: str, formatter: Optional[HtmlFormatter] = None) -> str:
    """Highlight source text, guessing the language from the file name."""
    formatter = formatter or HtmlFormatter(cssclass="highlight")
    try:
        lexer = get_lexer_for_filename(path, stripall=False)
    except ClassNotFound:
        lexer = get_lexer_by_name("text")
    return highlight(text, lexer, formatter)


# ============================================================================
# Renderer
# ============================================================================

class ContentRenderer:
    """Loads files into views and keeps one of them visible.

    The renderer reads and updates the controller's ViewState; it never
    touches the page URL.
    """

    def __init__(self, client: FilesystemClient, state: Optional[ViewState] = None):
        self.client = client
        self.state = state if state is not None else ViewState()
        self.views: Dict[RendererKind, Optional[View]] = {kind: None for kind in RendererKind}
        self.errors: List[ErrorBlock] = []
        self.formatter = HtmlFormatter(cssclass="highlight")
        self._loaders: Dict[RendererKind, Callable] = {
            RendererKind.CODE: self._load_code,
            RendererKind.MARKDOWN: self._load_markdown,
            RendererKind.HTML: self._load_html,
            RendererKind.IMAGE: self._load_image,
            RendererKind.VIDEO: self._load_video,
            RendererKind.AUDIO: self._load_audio,
        }

    @property
    def visible_view(self) -> Optional[View]:
        if self.state.active_kind is None:
            return None
        return self.views[self.state.active_kind]

    def is_visible(self, kind: RendererKind) -> bool:
        return self.state.active_kind is kind

    @property
    def active_errors(self) -> List[ErrorBlock]:
        return [error for error in self.errors if not error.dismissed]

    def dismiss_errors(self) -> None:
        for error in self.errors:
            error.dismiss()

    def resolve(self, path: str) -> str:
        """Resolve a path against the directory of the page on display."""
        current_dir = parent_dir(self.state.current_path or "/")
        return resolve_absolute(path, current_dir)

    async def load_project_page(
        self,
        path: str,
        is_current: Optional[Callable[[], bool]] = None,
    ) -> bool:
        """Load a file into the view matching its type.

        Args:
            path: Project path, absolute or relative to the current page
            is_current: Called once the content is ready; a false result
                means a newer navigation started and this one is dropped

        Returns:
            True if the view was switched
        """
        file_path = self.resolve(path)
        kind = classify(file_path)
        logger.debug(f"load_project_page {file_path} ({kind.value})")

        try:
            view = await self._loaders[kind](file_path)
        except (FetchError, RenderError) as e:
            if is_current is not None and not is_current():
                return False
            logger.error(f"Error loading {file_path}: {e}")
            self._show_error(kind, file_path, str(e))
            return False

        if is_current is not None and not is_current():
            logger.debug(f"Discarding stale load of {file_path}")
            return False

        self.errors.clear()
        self.views[kind] = view
        self.state.active_kind = kind
        self.state.current_path = file_path
        return True

    def _show_error(self, kind: RendererKind, path: str, message: str) -> None:
        # one error block per loader
        self.errors = [error for error in self.errors if error.kind is not kind]
        self.errors.append(ErrorBlock(kind=kind, path=path, message=f"Error loading file: {message}"))

    async def _load_code(self, path: str) -> CodeView:
        text = await self.client.fetch_file_contents(path)
        return CodeView(
            language=extension(path).lower(),
            text=text,
            html=highlight_code(text, path, self.formatter),
        )

    async def _load_markdown(self, path: str) -> MarkdownView:
        text = await self.client.fetch_file_contents(path)
        return MarkdownView(
            base_path=self.client.file_url("/"),
            homepage=relativize(path, self.client.project_root),
            html=render_markdown(text),
        )

    def _media_url(self, path: str) -> str:
        try:
            return self.client.file_url(path)
        except (TypeError, ValueError) as e:
            raise RenderError(f"invalid path {path!r}: {e}") from e

    async def _load_html(self, path: str) -> HtmlView:
        return HtmlView(src=self._media_url(path))

    async def _load_image(self, path: str) -> ImageView:
        return ImageView(src=self._media_url(path))

    async def _load_video(self, path: str) -> VideoView:
        return VideoView(src=self._media_url(path))

    async def _load_audio(self, path: str) -> AudioView:
        return AudioView(src=self._media_url(path))
