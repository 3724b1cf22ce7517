"""
Tests for the gateway client, folder tree and link resolution.

Tests cover:
- Directory listings (DAG-JSON), including failure modes
- Existence checks through the parent listing
- File fetches and URL construction
- Folder tree ordering and filtering
- Translation of the three markdown link forms
"""

import httpx
import pytest

from conftest import GATEWAY, FakeGateway, make_gateway
from hanuki.config import load_config
from hanuki.filters import FilterMode
from hanuki.vfs import (
    DirectoryEntry,
    FetchError,
    FilesystemClient,
    list_tree_level,
    resolve_link,
    translate_link,
    walk_tree,
)
from hanuki.vfs.client import DAG_JSON_MEDIA_TYPE


def client_for(handler) -> FilesystemClient:
    return FilesystemClient(GATEWAY, transport=httpx.MockTransport(handler))


class TestDirectoryEntry:
    def test_file_has_size(self):
        entry = DirectoryEntry.from_link({"Name": "a.md", "Hash": {"/": "bafyfile"}, "Size": 12})
        assert entry == DirectoryEntry("a.md", False, "bafyfile", 12)

    def test_unmarked_link_is_undetermined(self):
        entry = DirectoryEntry.from_link({"Name": "src", "Hash": {"/": "bafydir"}})
        assert entry.is_directory is None
        assert entry.size is None

    def test_tsize_does_not_make_a_directory(self):
        assert DirectoryEntry.from_link({"Name": "ReadMe.md", "Tsize": 20}).is_directory is None

    def test_non_numeric_size(self):
        with pytest.raises(ValueError):
            DirectoryEntry.from_link({"Name": "a.md", "Size": "big"})

    def test_type_marker_wins(self):
        assert DirectoryEntry.from_link({"Name": "src", "Type": "dir", "Size": 0}).is_directory
        assert not DirectoryEntry.from_link({"Name": "a", "Type": "file"}).is_directory


class TestFileUrl:
    def test_segments_are_encoded(self):
        client = FilesystemClient("http://gw.test/ipfs/bafy/")
        assert client.file_url("/my docs/a b.md") == "http://gw.test/ipfs/bafy/my%20docs/a%20b.md"

    def test_project_root_is_mounted(self):
        client = FilesystemClient("http://gw.test", project_root="/ProjectFiles")
        assert client.file_url("/ProjectFiles/docs/a.md") == "http://gw.test/ProjectFiles/docs/a.md"
        assert client.file_url("docs/a.md") == "http://gw.test/ProjectFiles/docs/a.md"


class TestListDirectory:
    @pytest.mark.asyncio
    async def test_root_listing(self, gateway, fs_client):
        entries = await fs_client.list_directory("/")

        names = {entry.name: entry.is_directory for entry in entries}
        assert names["ReadMe.md"] is False
        assert names["docs"] is None
        assert names["_hanuki"] is None

    @pytest.mark.asyncio
    async def test_requests_dag_json(self, gateway, fs_client):
        await fs_client.list_directory("/docs")

        request = gateway.requests[-1]
        assert request.headers["accept"] == DAG_JSON_MEDIA_TYPE
        assert request.url.params["format"] == "dag-json"
        assert request.url.path == "/docs"

    @pytest.mark.asyncio
    async def test_file_node_lists_empty(self, fs_client):
        assert await fs_client.list_directory("/ReadMe.md") == []

    @pytest.mark.asyncio
    async def test_missing_directory_is_none(self, fs_client):
        assert await fs_client.list_directory("/nope") is None

    @pytest.mark.asyncio
    async def test_transport_error_is_none(self, gateway, fs_client):
        gateway.fail_paths.add("/docs")
        assert await fs_client.list_directory("/docs") is None

    @pytest.mark.asyncio
    async def test_undecodable_body_is_none(self):
        client = client_for(lambda request: httpx.Response(200, text="<html>not json</html>"))
        assert await client.list_directory("/") is None

    @pytest.mark.asyncio
    async def test_non_numeric_size_is_none(self):
        client = client_for(lambda request: httpx.Response(200, json={
            "Data": {"/": {"bytes": "CAE"}},
            "Links": [{"Name": "a.md", "Size": "big"}],
        }))
        assert await client.list_directory("/") is None

    @pytest.mark.asyncio
    async def test_is_directory(self, gateway, fs_client):
        assert await fs_client.is_directory("/docs") is True
        assert await fs_client.is_directory("/ReadMe.md") is False
        assert await fs_client.is_directory("/nope") is None

    @pytest.mark.asyncio
    async def test_listing_is_never_cached(self, gateway, fs_client):
        await fs_client.list_directory("/")
        await fs_client.list_directory("/")
        assert gateway.listing_requests() == ["/", "/"]


class TestResourceExists:
    @pytest.mark.asyncio
    async def test_existing_and_missing(self):
        """
        Given a root listing with ReadMe.md and a src directory
        When /missing.txt is checked
        Then it does not exist while ReadMe.md does
        """
        def handler(request):
            return httpx.Response(200, json={
                "Data": {"/": {"bytes": "CAE"}},
                "Links": [{"Name": "ReadMe.md", "Size": 10}, {"Name": "src", "Type": "dir"}],
            })

        client = client_for(handler)

        assert await client.resource_exists("/missing.txt") is False
        assert await client.resource_exists("/ReadMe.md") is True
        assert await client.resource_exists("/src") is True

    @pytest.mark.asyncio
    async def test_nested(self, fs_client):
        assert await fs_client.resource_exists("/docs/guide.md") is True
        assert await fs_client.resource_exists("/docs/guide") is False

    @pytest.mark.asyncio
    async def test_empty_path(self, fs_client):
        assert await fs_client.resource_exists(None) is False
        assert await fs_client.resource_exists("") is False

    @pytest.mark.asyncio
    async def test_unlistable_parent(self, gateway, fs_client):
        gateway.fail_paths.add("/docs")
        assert await fs_client.resource_exists("/docs/guide.md") is False


class TestFetchFileContents:
    @pytest.mark.asyncio
    async def test_fetch(self, fs_client):
        assert await fs_client.fetch_file_contents("/docs/setup.md") == "# Setup\n"

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, fs_client):
        with pytest.raises(FetchError) as excinfo:
            await fs_client.fetch_file_contents("/nope.md")
        assert excinfo.value.status == 404
        assert "/nope.md" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, gateway, fs_client):
        gateway.fail_paths.add("/ReadMe.md")
        with pytest.raises(FetchError) as excinfo:
            await fs_client.fetch_file_contents("/ReadMe.md")
        assert excinfo.value.status is None

    @pytest.mark.asyncio
    async def test_encoded_names(self):
        gateway = make_gateway({"my docs/read me.md": "spaced"})
        client = gateway.client()

        assert await client.fetch_file_contents("/my docs/read me.md") == "spaced"
        assert "%20" in str(gateway.requests[-1].url)


class TestFolderTree:
    @pytest.mark.asyncio
    async def test_folders_first_and_filtered(self, fs_client):
        config = load_config('[tree-view]\nignore = ["*.log"]')

        items = await list_tree_level(fs_client, "/", config)

        names = [item.name for item in items]
        assert names[:2] == ["docs", "src"]
        assert "build.log" not in names
        assert "_hanuki" not in names
        assert "index.html" not in names
        assert "ReadMe.md" in names

    @pytest.mark.asyncio
    async def test_links_with_only_tsize(self):
        """
        Given a gateway listing whose links carry only Tsize
        When the root level of the tree is listed
        Then each child node is fetched and files are not shown as folders
        """
        def handler(request):
            if request.url.path == "/src":
                return httpx.Response(200, json={"Data": {"/": {"bytes": "CAE"}}, "Links": []})
            if request.url.path == "/ReadMe.md":
                return httpx.Response(200, json={"Data": {"/": {"bytes": "CAIYBA"}}, "Links": []})
            return httpx.Response(200, json={
                "Data": {"/": {"bytes": "CAE"}},
                "Links": [{"Name": "ReadMe.md", "Tsize": 20}, {"Name": "src", "Tsize": 300}],
            })

        items = await list_tree_level(client_for(handler), "/", load_config(None))

        assert [(item.name, item.is_directory) for item in items] == [("src", True), ("ReadMe.md", False)]

    @pytest.mark.asyncio
    async def test_unreachable_child_is_skipped(self):
        gateway = make_gateway({"a.md": "a", "b.md": "b"}, sized_links=False)
        gateway.fail_paths.add("/a.md")

        items = await list_tree_level(gateway.client(), "/", load_config(None))

        assert [item.name for item in items] == ["b.md"]

    @pytest.mark.asyncio
    async def test_walk_tree_with_gateway_links(self):
        gateway = make_gateway(sized_links=False)

        items = await walk_tree(gateway.client(), load_config(None))

        by_name = {item.name: item for item in items}
        assert by_name["ReadMe.md"].is_directory is False
        assert by_name["ReadMe.md"].children == []
        assert {child.name for child in by_name["docs"].children} == {"guide.md", "setup.md", "notes.tmp"}
        assert gateway.listing_requests().count("/ReadMe.md") == 1

    @pytest.mark.asyncio
    async def test_publishing_mode_shows_installed_files(self, fs_client):
        items = await list_tree_level(fs_client, "/", load_config(None), mode=FilterMode.IPFS_PUBLISHING)
        assert "_hanuki" in [item.name for item in items]

    @pytest.mark.asyncio
    async def test_paths_are_rooted(self, fs_client):
        items = await list_tree_level(fs_client, "/docs", load_config(None))
        assert {item.path for item in items} == {"/docs/guide.md", "/docs/setup.md", "/docs/notes.tmp"}

    @pytest.mark.asyncio
    async def test_unlistable_directory(self, fs_client):
        assert await list_tree_level(fs_client, "/nope", load_config(None)) is None

    @pytest.mark.asyncio
    async def test_walk_tree_depth(self, fs_client):
        config = load_config(None)

        shallow = await walk_tree(fs_client, config, max_depth=1)
        deep = await walk_tree(fs_client, config)

        docs_shallow = next(item for item in shallow if item.name == "docs")
        docs_deep = next(item for item in deep if item.name == "docs")
        assert docs_shallow.children == []
        assert {child.name for child in docs_deep.children} == {"guide.md", "setup.md", "notes.tmp"}
        assert docs_deep.to_dict()["children"][0]["path"].startswith("/docs/")


class TestTranslateLink:
    @pytest.mark.parametrize("href,expected", [
        ("docs/setup.md", "docs/setup.md"),
        ("./foo", "./foo"),
        ("#/./foo", "./foo"),
        ("#/docs/setup.md", "/docs/setup.md"),
        ("#setup", "setup"),
        ("my%20docs/a.md", "my docs/a.md"),
    ])
    def test_project_links(self, href, expected):
        assert translate_link(href) == expected

    @pytest.mark.parametrize("href", [
        None, "", "#", "https://example.org", "mailto:a@b.c", "#/?id=section", "page?x=1",
    ])
    def test_links_left_alone(self, href):
        assert translate_link(href) is None


class TestResolveLink:
    @pytest.fixture
    def docs_gateway(self) -> FakeGateway:
        return make_gateway({
            "docs/index.md": "# Index\n",
            "docs/foo.md": "# Foo\n",
            "docs/bar": "plain",
            "docs/bar.md": "# Bar\n",
        })

    @pytest.mark.asyncio
    async def test_md_suffix_fallback(self, docs_gateway):
        """
        Given the current page /docs/index.md
        When the link ./foo is clicked and only /docs/foo.md exists
        Then the link resolves to /docs/foo.md
        """
        client = docs_gateway.client()
        assert await resolve_link(client, "./foo", "/docs/index.md") == "/docs/foo.md"

    @pytest.mark.asyncio
    async def test_existing_target_is_kept(self, docs_gateway):
        client = docs_gateway.client()
        assert await resolve_link(client, "./bar", "/docs/index.md") == "/docs/bar"

    @pytest.mark.asyncio
    async def test_missing_everywhere(self, docs_gateway):
        client = docs_gateway.client()
        assert await resolve_link(client, "../nothing", "/docs/index.md") == "/nothing"

    @pytest.mark.asyncio
    async def test_router_style_link(self, docs_gateway):
        client = docs_gateway.client()
        assert await resolve_link(client, "#/./foo", "/docs/index.md") == "/docs/foo.md"

    @pytest.mark.asyncio
    async def test_external_link(self, docs_gateway):
        client = docs_gateway.client()
        assert await resolve_link(client, "https://example.org", "/docs/index.md") is None
