"""Decorators for hanuki commands."""

import functools
import logging
from typing import Any, Callable

import typer
from rich.console import Console

from .config import ConfigParseError
from .installer import InstallError
from .publisher import PublishError

logger = logging.getLogger(__name__)
console = Console(stderr=True)


def handle_cli_errors(func: Callable) -> Callable:
    """
    Decorator to turn command failures into a message and a non-zero exit.

    Handles:
    - InstallError: init/update could not touch the project
    - PublishError: the IPFS daemon refused or could not be reached
    - ConfigParseError: hanuki.toml is not valid
    - FileNotFoundError, PermissionError, ValueError
    - General exceptions: logged with their traceback
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except InstallError as e:
            console.print(f"[bold red]Error:[/bold red] {e}")
            raise typer.Exit(code=1)
        except PublishError as e:
            console.print(f"[bold red]Publishing failed:[/bold red] {e}")
            console.print("[yellow]Tip: Check that the IPFS daemon is running (ipfs daemon)[/yellow]")
            raise typer.Exit(code=1)
        except ConfigParseError as e:
            console.print(f"[bold red]Invalid configuration:[/bold red] {e}")
            raise typer.Exit(code=1)
        except FileNotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] File not found: {e}")
            raise typer.Exit(code=1)
        except PermissionError as e:
            console.print(f"[bold red]Error:[/bold red] Permission denied: {e}")
            raise typer.Exit(code=1)
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid input: {e}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)
        except typer.Exit:
            raise
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            console.print(f"[bold red]Unexpected error:[/bold red] {e}")
            raise typer.Exit(code=1)

    return wrapper
