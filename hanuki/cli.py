import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.traceback import install
from rich.tree import Tree

from . import __version__
from .config import CONFIG_FILENAME, ProjectConfig, load_config, load_config_file
from .decorators import handle_cli_errors
from .filters import FilterMode
from .installer import install as install_project
from .installer import update as update_project
from .publisher import DEFAULT_API_URL, IpfsPublisher
from .vfs.base import FetchError
from .vfs.client import FilesystemClient
from .vfs.tree import TreeItem, walk_tree

# Initialize Rich Traceback for better error messages
install(show_locals=False)

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger("hanuki")

DEFAULT_GATEWAY = "http://localhost:8080"

app = typer.Typer(help="Browse and publish project folders on IPFS")


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
):
    """
    hanuki - a file browser for projects published on IPFS.

    Install the viewer into a project folder, publish the folder to an IPFS
    daemon and browse it through any gateway.
    """
    if verbose:
        logger.setLevel(logging.DEBUG)
        console.print("[bold green]Verbose mode enabled.[/bold green]")


@app.command()
def about():
    """Display information about hanuki."""
    console.print(f"[bold cyan]hanuki {__version__}[/bold cyan] - project browser for IPFS")
    console.print("")
    console.print("[bold]Commands:[/bold]")
    console.print("  hanuki init [dir]              Install the viewer and a hanuki.toml")
    console.print("  hanuki update [dir]            Refresh the viewer files")
    console.print("  hanuki publish [dir]           Add the project to IPFS")
    console.print("  hanuki serve [dir]             Browse a published project")
    console.print("  hanuki tree                    Print the folder tree")
    console.print("  hanuki config [dir]            Show the effective configuration")
    console.print("")
    console.print("[bold]Getting Started:[/bold]")
    console.print("  1. Install: hanuki init ~/my-project")
    console.print("  2. Publish: hanuki publish ~/my-project")
    console.print("  3. Browse: hanuki serve ~/my-project")


def _gateway_for(project_dir: Path, gateway: Optional[str]) -> str:
    """The gateway URL of a project: explicit, or from its recorded identifier."""
    if gateway:
        return gateway

    config = load_config_file(project_dir / CONFIG_FILENAME)
    if not config.ipfs.cid:
        raise ValueError(
            f"No published CID in {project_dir / CONFIG_FILENAME}; "
            "run 'hanuki publish' or pass --gateway"
        )
    return f"{DEFAULT_GATEWAY}/ipfs/{config.ipfs.cid}"


@app.command()
@handle_cli_errors
def init(
    project_dir: Path = typer.Argument(Path("."), help="Project folder to install into"),
):
    """
    Install the viewer into a project folder.

    Creates _hanuki/, index.html and a hanuki.toml to edit.

    Example:
        hanuki init ~/my-project
    """
    created = install_project(project_dir)
    console.print(f"[green]✓ hanuki installed in {project_dir}[/green]")
    for path in created:
        console.print(f"  {path}")
    console.print(f"  Edit {CONFIG_FILENAME}, then run 'hanuki publish'")


@app.command()
@handle_cli_errors
def update(
    project_dir: Path = typer.Argument(Path("."), help="Project folder to update"),
):
    """Refresh the viewer files, keeping hanuki.toml."""
    update_project(project_dir)
    console.print(f"[green]✓ hanuki updated in {project_dir}[/green]")


@app.command()
@handle_cli_errors
def publish(
    project_dir: Path = typer.Argument(Path("."), help="Project folder to publish"),
    api_url: str = typer.Option(DEFAULT_API_URL, "--gateway", "--api-url", help="IPFS daemon RPC API URL"),
    timeout: float = typer.Option(60.0, "--timeout", help="Upload timeout in seconds"),
):
    """
    Add the project folder to IPFS and record its CID in hanuki.toml.

    Example:
        hanuki publish ~/my-project --gateway http://localhost:5001
    """
    if not (project_dir / CONFIG_FILENAME).is_file():
        raise FileNotFoundError(f"{project_dir / CONFIG_FILENAME} (run 'hanuki init' first)")

    publisher = IpfsPublisher(api_url, timeout=timeout)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Publishing...", total=None)

        def on_added(name: str) -> None:
            progress.update(task, description=f"Added {name or '(root)'}")

        cid = asyncio.run(publisher.publish(project_dir, progress=on_added))

    console.print(f"[green]✓ Published {project_dir}[/green]")
    console.print(f"  CID: [bold]{cid}[/bold]")
    console.print(f"  {DEFAULT_GATEWAY}/ipfs/{cid}/")


@app.command()
@handle_cli_errors
def serve(
    project_dir: Path = typer.Argument(Path("."), help="Published project folder"),
    gateway: Optional[str] = typer.Option(None, "--gateway", help="Gateway URL of the project root"),
    host: str = typer.Option("127.0.0.1", "--host", help="Host to bind to"),
    port: int = typer.Option(8000, "--port", help="Port to bind to"),
    no_open: bool = typer.Option(False, "--no-open", help="Don't auto-open browser"),
):
    """
    Browse a published project in the local viewer.

    Examples:
        hanuki serve ~/my-project
        hanuki serve --gateway https://ipfs.io/ipfs/<cid>
    """
    import webbrowser

    import uvicorn

    from .server import create_app

    gateway_url = _gateway_for(project_dir, gateway)

    console.print("[blue]Starting hanuki viewer...[/blue]")
    console.print(f"[blue]Project: {gateway_url}[/blue]")
    console.print(f"[green]Viewer running at http://{host}:{port}[/green]")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    if not no_open:
        browser_host = "localhost" if host == "0.0.0.0" else host
        webbrowser.open(f"http://{browser_host}:{port}")

    uvicorn.run(create_app(gateway_url), host=host, port=port, log_level="info")


def _add_branch(branch: Tree, items: List[TreeItem]) -> None:
    for item in items:
        if item.is_directory:
            child = branch.add(f"[bold blue]{item.name}/[/bold blue]")
            _add_branch(child, item.children)
        else:
            branch.add(item.name)


async def _fetch_tree(gateway_url: str, depth: Optional[int], mode: FilterMode):
    async with FilesystemClient(gateway_url) as client:
        try:
            config = load_config(await client.fetch_file_contents(f"/{CONFIG_FILENAME}"))
        except FetchError:
            config = load_config(None)
        try:
            gitignore = await client.fetch_file_contents("/.gitignore")
        except FetchError:
            gitignore = None
        items = await walk_tree(client, config, "/", depth, gitignore, mode)
    return config, items


@app.command()
@handle_cli_errors
def tree(
    project_dir: Path = typer.Argument(Path("."), help="Published project folder"),
    gateway: Optional[str] = typer.Option(None, "--gateway", help="Gateway URL of the project root"),
    depth: Optional[int] = typer.Option(None, "--depth", "-d", help="Levels to expand"),
    mode: FilterMode = typer.Option(FilterMode.TREE_VIEW, "--mode", help="Filter policy to apply"),
):
    """
    Print the folder tree of a published project.

    Example:
        hanuki tree --gateway http://localhost:8080/ipfs/<cid> --depth 2
    """
    gateway_url = _gateway_for(project_dir, gateway)
    config, items = asyncio.run(_fetch_tree(gateway_url, depth, mode))

    root = Tree(f"[bold]{config.project.name}[/bold]")
    _add_branch(root, items)
    console.print(root)


@app.command(name="config")
@handle_cli_errors
def show_config(
    project_dir: Path = typer.Argument(Path("."), help="Project folder"),
    as_json: bool = typer.Option(False, "--json", help="Print as JSON"),
):
    """Show the configuration hanuki uses for a project."""
    config: ProjectConfig = load_config_file(project_dir)

    if as_json:
        console.print_json(json.dumps(config.to_dict()))
        return

    project = config.project
    table = Table(title=f"{CONFIG_FILENAME} - {project.name}")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("project.name", project.name)
    table.add_row("project.version", project.version)
    table.add_row("project.description", project.description)
    table.add_row("project.authors", ", ".join(project.authors))
    table.add_row("project.license", project.license)
    table.add_row("project.urls.repository", project.urls.repository)
    table.add_row("ipfs.cid", config.ipfs.cid or "(not published)")
    table.add_row("ipfs.api_version", config.ipfs.api_version)
    table.add_row("tree-view.use_gitignore", str(config.tree_view.use_gitignore))
    table.add_row("tree-view.include", ", ".join(config.tree_view.include))
    table.add_row("tree-view.ignore", ", ".join(config.tree_view.ignore))
    table.add_row("ipfs-publishing.use_treeview_ignore", str(config.ipfs_publishing.use_tree_view_ignore))
    table.add_row("ipfs-publishing.use_gitignore", str(config.ipfs_publishing.use_gitignore))
    table.add_row("ipfs-publishing.include", ", ".join(config.ipfs_publishing.include))
    table.add_row("ipfs-publishing.ignore", ", ".join(config.ipfs_publishing.ignore))

    console.print(table)


if __name__ == "__main__":
    app()
