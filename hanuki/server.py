"""
Web viewer for hanuki projects.

Serves the viewer page for a project published on a storage gateway: folder
tree on the left, the selected file on the right. Rendering happens here;
markdown links are rewritten to go through ``/link`` so that clicks come back
to the controller as navigation requests.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from bs4 import BeautifulSoup
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel

from .controller import NavigationController
from .messaging import LinkClickEvent, NavigateEvent
from .paths import display_name, normalize
from .renderer import MarkdownView
from .vfs.client import FilesystemClient
from .vfs.tree import TreeItem
from .vfs.resolver import translate_link

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
ASSET_DIR = Path(__file__).parent / "assets" / "_hanuki"


# Pydantic models for API
class TreeItemResponse(BaseModel):
    path: str
    name: str
    is_directory: bool


class ErrorResponse(BaseModel):
    kind: str
    path: str
    message: str


class ViewStateResponse(BaseModel):
    current_path: Optional[str]
    active_kind: Optional[str]
    url: str
    page_title: str
    errors: List[ErrorResponse] = []


class NavigateRequest(BaseModel):
    file: str
    name: str = ""


# Global controller instance
_controller: Optional[NavigationController] = None
_started = False
_start_lock: Optional[asyncio.Lock] = None

templates = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def get_controller() -> NavigationController:
    """Get the current controller instance."""
    if _controller is None:
        raise HTTPException(status_code=500, detail="Viewer not initialized")
    return _controller


def set_controller(controller: NavigationController) -> None:
    """Set the controller instance directly (for testing)."""
    global _controller, _started, _start_lock
    _controller = controller
    _started = False
    _start_lock = None


def create_app(gateway_url: str, project_root: str = "/", strict_ordering: bool = False) -> FastAPI:
    """Create the viewer application for a project served by a gateway."""
    client = FilesystemClient(gateway_url, project_root=project_root)
    logger.info(f"Serving project from {gateway_url}")
    set_controller(NavigationController(client, strict_ordering=strict_ordering))
    return app


async def ensure_started() -> NavigationController:
    """Run the start-up sequence once; requests arriving meanwhile wait for it."""
    global _started, _start_lock
    controller = get_controller()
    if _start_lock is None:
        _start_lock = asyncio.Lock()
    async with _start_lock:
        if not _started:
            await controller.start()
            _started = True
    return controller


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _controller is not None:
        await _controller.client.aclose()
        logger.debug("Gateway client closed")


app = FastAPI(
    title="hanuki viewer",
    description="Browse a project published on IPFS",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/_hanuki", StaticFiles(directory=ASSET_DIR), name="assets")


def rewrite_links(html: str) -> str:
    """Point project links of a rendered document at the /link route."""
    soup = BeautifulSoup(html, "html.parser")
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if translate_link(href) is not None:
            anchor["href"] = f"/link?href={quote(href, safe='')}"
    return str(soup)


def _state_response(controller: NavigationController) -> Dict[str, Any]:
    state = controller.state
    return {
        "current_path": state.current_path,
        "active_kind": state.active_kind.value if state.active_kind else None,
        "url": controller.url.href,
        "page_title": controller.chrome.page_title,
        "errors": [
            {"kind": error.kind.value, "path": error.path, "message": error.message}
            for error in controller.renderer.active_errors
        ],
    }


async def _open_folders(controller: NavigationController, items: List[TreeItem], path: Optional[str]) -> None:
    """Fill in the folders leading to the file on display."""
    if not path:
        return
    for item in items:
        if item.is_directory and path.startswith(f"{item.path}/"):
            item.children = await controller.list_tree(item.path) or []
            await _open_folders(controller, item.children, path)


@app.get("/", response_class=HTMLResponse)
async def viewer(file: Optional[str] = Query(None)):
    """Serve the viewer page, showing ``file`` if given."""
    controller = await ensure_started()

    if file is not None and file != controller.url.file:
        controller.url.set_file(normalize(f"/{file}"))
        await controller.render_project_page()
        controller.chrome.page_title = display_name(controller.state.current_path or "")

    view = controller.renderer.visible_view
    content_html = None
    if isinstance(view, MarkdownView):
        content_html = rewrite_links(view.html)

    tree = await controller.list_tree("/") or []
    await _open_folders(controller, tree, controller.state.current_path)
    template = templates.get_template("viewer.html")
    return template.render(
        chrome=controller.chrome,
        state=controller.state,
        view=view,
        content_html=content_html,
        errors=controller.renderer.active_errors,
        tree=tree,
        pygments_css=controller.renderer.formatter.get_style_defs(".highlight"),
    )


@app.get("/link")
async def follow_link(href: str = Query(...)):
    """Follow a link clicked in a rendered markdown document."""
    controller = await ensure_started()
    results = await controller.channel.post(LinkClickEvent(path=href))
    if not results:
        raise HTTPException(status_code=404, detail=f"Unhandled link: {href}")
    return RedirectResponse(url=controller.url.href, status_code=303)


@app.get("/api/tree", response_model=List[TreeItemResponse])
async def tree(path: str = Query("/")):
    """One level of the folder tree."""
    controller = await ensure_started()
    items = await controller.list_tree(path)
    if items is None:
        raise HTTPException(status_code=404, detail=f"Cannot list {path}")
    return [
        {"path": item.path, "name": item.name, "is_directory": item.is_directory}
        for item in items
    ]


@app.get("/api/view", response_model=ViewStateResponse)
async def view_state():
    """The file on display."""
    controller = await ensure_started()
    return _state_response(controller)


@app.post("/api/navigate", response_model=ViewStateResponse)
async def navigate(request: NavigateRequest):
    """Display another file."""
    controller = await ensure_started()
    await controller.channel.post(NavigateEvent(path=request.file, name=request.name))
    return _state_response(controller)


@app.post("/api/errors/dismiss", response_model=ViewStateResponse)
async def dismiss_errors():
    """Dismiss the error blocks on display."""
    controller = await ensure_started()
    controller.renderer.dismiss_errors()
    return _state_response(controller)


@app.get("/api/config")
async def get_config():
    """The project configuration in use."""
    controller = await ensure_started()
    return controller.config.to_dict()
