"""
Shared fixtures: an in-memory storage gateway served through httpx.MockTransport.
"""

from typing import Dict, List, Optional, Union

import httpx
import pytest

from hanuki.vfs.client import DAG_JSON_MEDIA_TYPE, FilesystemClient

GATEWAY = "http://gateway.test"

DEMO_CONFIG = """\
[project]
name = "Demo Project"
version = "1.2.0"
description = "A project used by the tests"
authors = ["Ada", "Grace"]
icon = "logo.png"

[project.urls]
repository = "https://example.org/demo.git"

[tree-view]
use_gitignore = true
ignore = ["*.tmp"]

[ipfs-publishing]
use_treeview_ignore = true
ignore = []
"""


class FakeGateway:
    """Serves a fixed set of files like a content-addressed gateway would.

    With ``sized_links`` off, links carry only ``Tsize`` the way a Kubo
    gateway lists them, so files and folders look alike.
    """

    def __init__(self, files: Dict[str, Union[str, bytes]], sized_links: bool = True):
        self.sized_links = sized_links
        self.files = {"/" + path.lstrip("/"): content for path, content in files.items()}
        self.requests: List[httpx.Request] = []
        self.fail_paths = set()

    @property
    def directories(self) -> set:
        dirs = {""}
        for path in self.files:
            parts = path.split("/")[1:-1]
            for depth in range(1, len(parts) + 1):
                dirs.add("/" + "/".join(parts[:depth]))
        return dirs

    def links(self, directory: str) -> List[dict]:
        links = []
        seen = set()
        prefix = f"{directory}/"
        for path, content in sorted(self.files.items()):
            if not path.startswith(prefix):
                continue
            rest = path[len(prefix):]
            name = rest.split("/")[0]
            if name in seen:
                continue
            seen.add(name)
            link = {"Name": name, "Hash": {"/": f"bafy-{name}"}}
            if not self.sized_links:
                link["Tsize"] = len(content) + 10
            elif "/" not in rest:
                link["Size"] = len(content)
            links.append(link)
        return links

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.rstrip("/")

        if path in self.fail_paths:
            raise httpx.ConnectError("gateway unreachable", request=request)

        if request.headers.get("accept") == DAG_JSON_MEDIA_TYPE:
            if path in self.directories:
                return httpx.Response(200, json={
                    "Data": {"/": {"bytes": "CAE"}},
                    "Links": self.links(path),
                })
            if path in self.files:
                return httpx.Response(200, json={"Data": {"/": {"bytes": "CAIYBA"}}, "Links": []})
            return httpx.Response(404)

        if path in self.files:
            content = self.files[path]
            if isinstance(content, bytes):
                return httpx.Response(200, content=content)
            return httpx.Response(200, text=content)
        return httpx.Response(404)

    def client(self, project_root: str = "/") -> FilesystemClient:
        return FilesystemClient(
            GATEWAY,
            project_root=project_root,
            transport=httpx.MockTransport(self.handler),
        )

    def listing_requests(self) -> List[str]:
        return [
            request.url.path for request in self.requests
            if request.headers.get("accept") == DAG_JSON_MEDIA_TYPE
        ]


def make_gateway(
    files: Optional[Dict[str, Union[str, bytes]]] = None,
    sized_links: bool = True,
) -> FakeGateway:
    if files is None:
        files = {
            "ReadMe.md": "# Demo\n\nSee [the guide](docs/guide.md) and [setup](#/./docs/setup).\n",
            "docs/guide.md": "# Guide\n\n[Back](../ReadMe.md)\n",
            "docs/setup.md": "# Setup\n",
            "docs/notes.tmp": "scratch",
            "src/main.py": "print('hello')\n",
            "logo.png": b"\x89PNG",
            "build.log": "noise",
            ".gitignore": "*.log\n",
            "hanuki.toml": DEMO_CONFIG,
            "index.html": "<html></html>",
            "_hanuki/hanuki.css": "body {}",
        }
    return FakeGateway(files, sized_links)


@pytest.fixture
def gateway():
    """Gateway serving a small demo project."""
    return make_gateway()


@pytest.fixture
def fs_client(gateway):
    """Client bound to the demo gateway."""
    return gateway.client()
