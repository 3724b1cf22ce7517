"""
Configuration handling for hanuki projects.

The project configuration lives in ``hanuki.toml`` at the project root and is
read twice: by the viewer (fetched from the storage gateway) and by the CLI
(read from disk). Both go through the same tomlkit parser so that a file the
viewer accepts is also what ``hanuki publish`` sees.

Recognized sections:
- [project] and [project.urls]: project metadata shown by the viewer
- [ipfs]: identifier of the last publication
- [tree-view] (legacy: [TreeView]): what the folder tree shows
- [ipfs-publishing] (legacy: [IpfsPublishing]): what gets published
"""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import tomlkit
from tomlkit.exceptions import TOMLKitError

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "hanuki.toml"


class ConfigParseError(ValueError):
    """Raised when configuration text cannot be parsed."""

    def __init__(self, message: str, line: Optional[int] = None):
        self.line = line
        super().__init__(message)


@dataclass(frozen=True)
class ProjectUrls:
    """Links shown in the viewer header."""
    repository: str = ""
    documentation: str = ""
    homepage: str = ""


@dataclass(frozen=True)
class ProjectInfo:
    """Project metadata."""
    name: str = "Unnamed Project"
    version: str = "0.1.0"
    description: str = ""
    authors: Tuple[str, ...] = ()
    license: str = ""
    keywords: Tuple[str, ...] = ()
    urls: ProjectUrls = field(default_factory=ProjectUrls)
    icon: str = ""


@dataclass(frozen=True)
class IpfsSettings:
    """Identifier written by the last successful publish."""
    cid: Optional[str] = None
    api_version: str = "v0"


@dataclass(frozen=True)
class TreeViewSettings:
    """Filter rules for the folder tree."""
    use_gitignore: bool = True
    include: Tuple[str, ...] = ()
    ignore: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PublishingSettings:
    """Filter rules for publishing."""
    use_tree_view_ignore: bool = True
    use_gitignore: bool = True
    include: Tuple[str, ...] = ()
    ignore: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ProjectConfig:
    """Normalized project configuration. Never mutated after creation."""
    project: ProjectInfo = field(default_factory=ProjectInfo)
    ipfs: IpfsSettings = field(default_factory=IpfsSettings)
    tree_view: TreeViewSettings = field(default_factory=TreeViewSettings)
    ipfs_publishing: PublishingSettings = field(default_factory=PublishingSettings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary (tuples become lists)."""
        return json.loads(json.dumps(asdict(self)))


DEFAULT_CONFIG = ProjectConfig()


# ============================================================================
# Parsing
# ============================================================================

def parse_document(text: str) -> tomlkit.TOMLDocument:
    """
    Parse configuration text into an editable document.

    The document keeps comments and layout, so writing it back only
    changes the values that were touched.

    Raises:
        ConfigParseError: If the text is not valid TOML
    """
    try:
        return tomlkit.parse(text)
    except TOMLKitError as e:
        raise ConfigParseError(str(e), getattr(e, "line", None)) from e


def parse_toml(text: Optional[str]) -> Dict[str, Any]:
    """
    Parse hanuki.toml text.

    Args:
        text: Configuration text

    Returns:
        Nested dictionary of sections and values

    Raises:
        ConfigParseError: If the text is not valid TOML
    """
    if not text:
        return {}
    return parse_document(text).unwrap()


# ============================================================================
# Mapping raw sections onto ProjectConfig
# ============================================================================

def _section(parsed: Dict[str, Any], *names: str) -> Optional[Dict[str, Any]]:
    """First section present among the given names (hyphenated name first)."""
    for name in names:
        value = parsed.get(name)
        if isinstance(value, dict):
            return value
    return None


def _string(section: Dict[str, Any], key: str, default: str) -> str:
    value = section.get(key)
    return str(value) if value else default


def _strings(section: Dict[str, Any], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = section.get(key)
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    return default


def _flag(section: Dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key)
    return value if isinstance(value, bool) else default


def map_to_config(parsed: Dict[str, Any]) -> ProjectConfig:
    """
    Map a parsed configuration onto the normalized record.

    Missing or mistyped values keep their defaults.
    """
    defaults = DEFAULT_CONFIG

    project = defaults.project
    project_section = _section(parsed, "project")
    if project_section is not None:
        urls = project.urls
        urls_section = project_section.get("urls")
        if isinstance(urls_section, dict):
            urls = ProjectUrls(
                repository=_string(urls_section, "repository", urls.repository),
                documentation=_string(urls_section, "documentation", urls.documentation),
                homepage=_string(urls_section, "homepage", urls.homepage),
            )
        project = ProjectInfo(
            name=_string(project_section, "name", project.name),
            version=_string(project_section, "version", project.version),
            description=_string(project_section, "description", project.description),
            authors=_strings(project_section, "authors", project.authors),
            license=_string(project_section, "license", project.license),
            keywords=_strings(project_section, "keywords", project.keywords),
            urls=urls,
            icon=_string(project_section, "icon", project.icon),
        )

    ipfs = defaults.ipfs
    ipfs_section = _section(parsed, "ipfs")
    if ipfs_section is not None:
        ipfs = IpfsSettings(
            cid=ipfs_section.get("cid") or ipfs.cid,
            api_version=_string(ipfs_section, "api_version", ipfs.api_version),
        )

    tree_view = defaults.tree_view
    tree_section = _section(parsed, "tree-view", "TreeView")
    if tree_section is not None:
        tree_view = TreeViewSettings(
            use_gitignore=_flag(tree_section, "use_gitignore", tree_view.use_gitignore),
            include=_strings(tree_section, "include", tree_view.include),
            ignore=_strings(tree_section, "ignore", tree_view.ignore),
        )

    publishing = defaults.ipfs_publishing
    publishing_section = _section(parsed, "ipfs-publishing", "IpfsPublishing")
    if publishing_section is not None:
        publishing = PublishingSettings(
            use_tree_view_ignore=_flag(
                publishing_section, "use_treeview_ignore", publishing.use_tree_view_ignore
            ),
            use_gitignore=_flag(publishing_section, "use_gitignore", publishing.use_gitignore),
            include=_strings(publishing_section, "include", publishing.include),
            ignore=_strings(publishing_section, "ignore", publishing.ignore),
        )

    return ProjectConfig(
        project=project,
        ipfs=ipfs,
        tree_view=tree_view,
        ipfs_publishing=publishing,
    )


def load_config(text: Optional[str]) -> ProjectConfig:
    """
    Build the project configuration from raw text.

    Absent or malformed text yields DEFAULT_CONFIG; this never raises.
    """
    if text is None:
        logger.info("No configuration found, using defaults")
        return DEFAULT_CONFIG

    try:
        return map_to_config(parse_toml(text))
    except ConfigParseError as e:
        logger.warning(f"Failed to parse configuration: {e}")
        logger.warning("Using default configuration")
        return DEFAULT_CONFIG


def load_config_file(path: Union[str, Path]) -> ProjectConfig:
    """Load configuration from a file on disk (missing file -> defaults)."""
    path = Path(path)
    if path.is_dir():
        path = path / CONFIG_FILENAME

    if not path.exists():
        return load_config(None)

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        logger.warning(f"Failed to read {path}: {e}")
        return load_config(None)

    return load_config(text)


# ============================================================================
# Serialization
# ============================================================================

def dump_toml(data: Dict[str, Any]) -> str:
    """Serialize a nested dictionary to TOML text; sub-tables become dotted headers."""
    return tomlkit.dumps(data)


def set_ipfs_values(document: tomlkit.TOMLDocument, **values: Any) -> None:
    """Set keys of the [ipfs] table, creating the table when it is missing."""
    ipfs = document.get("ipfs")
    if isinstance(ipfs, dict):
        for key, value in values.items():
            ipfs[key] = value
        return

    table = tomlkit.table()
    for key, value in values.items():
        table[key] = value
    document["ipfs"] = table


def write_config_text(path: Path, text: str) -> None:
    """Replace a file's content atomically."""
    path = Path(path)
    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.unlink(temp_name)
        raise


def record_publication(path: Union[str, Path], cid: str, api_version: str = "v0") -> Dict[str, Any]:
    """
    Store the identifier of a successful publication in the config file.

    Every other section of the file is kept, comments included. An
    unreadable file is replaced by one containing only the [ipfs] section.

    Returns:
        The mapping that was written
    """
    path = Path(path)
    if path.is_dir():
        path = path / CONFIG_FILENAME

    document = tomlkit.document()
    if path.exists():
        try:
            document = parse_document(path.read_text(encoding="utf-8"))
        except ConfigParseError as e:
            logger.warning(f"Could not parse existing configuration, creating a new one: {e}")

    set_ipfs_values(document, api_version=api_version, cid=cid)

    write_config_text(path, tomlkit.dumps(document))
    logger.debug(f"Recorded CID {cid} in {path}")
    return document.unwrap()
