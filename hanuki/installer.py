"""
Installing hanuki's files into a project directory.

``init`` copies the viewer assets and a fresh hanuki.toml; ``update``
refreshes the assets and leaves the configuration (and its recorded
identifier) alone.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Union

from .config import CONFIG_FILENAME, dump_toml, parse_document, set_ipfs_values, write_config_text

logger = logging.getLogger(__name__)

ASSETS_DIR = Path(__file__).parent / "assets"
ASSET_DIR_NAME = "_hanuki"
INDEX_FILENAME = "index.html"


class InstallError(Exception):
    """Base class for installation problems."""


class AlreadyInstalledError(InstallError):
    """hanuki files already exist in the target directory."""


class NotInstalledError(InstallError):
    """The target directory has no hanuki installation to update."""


def installed_files(target: Union[str, Path]) -> List[Path]:
    """hanuki files present in a directory."""
    target = Path(target)
    candidates = [target / ASSET_DIR_NAME, target / INDEX_FILENAME, target / CONFIG_FILENAME]
    return [path for path in candidates if path.exists()]


def is_installed(target: Union[str, Path]) -> bool:
    return bool(installed_files(target))


def _copy_assets(target: Path) -> List[Path]:
    asset_dir = target / ASSET_DIR_NAME
    if asset_dir.exists():
        shutil.rmtree(asset_dir)
    shutil.copytree(ASSETS_DIR / ASSET_DIR_NAME, asset_dir)
    shutil.copy2(ASSETS_DIR / INDEX_FILENAME, target / INDEX_FILENAME)
    return [asset_dir, target / INDEX_FILENAME]


def install(target: Union[str, Path]) -> List[Path]:
    """
    Install hanuki into a directory.

    Returns:
        Paths that were created

    Raises:
        AlreadyInstalledError: If any hanuki file is already there
    """
    target = Path(target)
    existing = installed_files(target)
    if existing:
        names = ", ".join(path.name for path in existing)
        raise AlreadyInstalledError(f"hanuki seems to be already installed in {target} ({names})")

    target.mkdir(parents=True, exist_ok=True)
    created = _copy_assets(target)

    # new installations start without a publication
    config = parse_document((ASSETS_DIR / CONFIG_FILENAME).read_text(encoding="utf-8"))
    set_ipfs_values(config, cid="")
    config_path = target / CONFIG_FILENAME
    write_config_text(config_path, dump_toml(config))
    created.append(config_path)

    logger.info(f"Installed hanuki in {target}")
    return created


def update(target: Union[str, Path]) -> List[Path]:
    """
    Refresh hanuki's assets, keeping the project configuration.

    Raises:
        NotInstalledError: If hanuki is not installed in the directory
    """
    target = Path(target)
    if not (target / ASSET_DIR_NAME).exists() and not (target / INDEX_FILENAME).exists():
        raise NotInstalledError(f"hanuki does not seem to be installed in {target}")

    updated = _copy_assets(target)
    logger.info(f"Updated hanuki in {target}")
    return updated
