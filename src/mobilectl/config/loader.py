"""
Configuration loader for mobilectl.

The tool reads its project settings from a YAML file named
``mobileops.yaml`` located in the project root. Only the ``changelog``
section is interpreted here; it is converted into a
:class:`~mobilectl.config.models.ChangelogConfig`.

A missing configuration file is not an error: the defaults are
returned so that ``mobilectl changelog generate`` works in a fresh
repository. A file that cannot be parsed, or that contains values of
the wrong type, raises :class:`ConfigError`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from mobilectl.config.models import ChangelogConfig, CommitType, ReleaseNotes


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings when the CLI has
# not configured logging. The CLI calls ``logging.basicConfig`` which
# attaches root handlers explicitly.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILENAME = "mobileops.yaml"

# camelCase spellings accepted for backward compatibility with older
# configuration files.
_KEY_ALIASES = {
    "outputFile": "output_file",
    "fromTag": "from_tag",
    "useLastState": "use_last_state",
    "commitTypes": "commit_types",
    "includeContributors": "include_contributors",
    "includeStats": "include_stats",
    "includeCompareLinks": "include_compare_links",
}

_BOOL_KEYS = (
    "enabled",
    "append",
    "use_last_state",
    "include_contributors",
    "include_stats",
    "include_compare_links",
)


class ConfigError(Exception):
    """Raised when the configuration file is unreadable or invalid."""

    pass


def find_config_file(project_root: Path) -> Path:
    """Return the path of the configuration file for ``project_root``."""
    return project_root / CONFIG_FILENAME


def load_config(project_root: Optional[Path] = None) -> ChangelogConfig:
    """Load the changelog configuration of a project.

    Parameters
    ----------
    project_root : Path, optional
        Directory containing ``mobileops.yaml``. Defaults to the current
        working directory.

    Returns
    -------
    ChangelogConfig
        The parsed configuration, or the defaults if no file exists.

    Raises
    ------
    ConfigError
        If the file cannot be read, is not valid YAML, or contains
        values of the wrong type.
    """
    root = project_root if project_root is not None else Path.cwd()
    config_path = find_config_file(root)

    if not config_path.exists():
        logger.debug("No configuration file at %s; using defaults", config_path)
        return ChangelogConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid YAML in {config_path.name}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path.name} must contain a mapping at the top level")

    section = data.get("changelog") or {}
    config = parse_changelog_section(section)
    logger.debug("Loaded changelog configuration from: %s", config_path)
    return config


def parse_changelog_section(section: Any) -> ChangelogConfig:
    """Convert the raw ``changelog`` mapping into a :class:`ChangelogConfig`."""
    if not isinstance(section, dict):
        raise ConfigError("'changelog' must be a mapping")

    raw = {_KEY_ALIASES.get(key, key): value for key, value in section.items()}
    config = ChangelogConfig()

    for key in _BOOL_KEYS:
        if key in raw:
            if not isinstance(raw[key], bool):
                raise ConfigError(f"'changelog.{key}' must be a boolean")
            setattr(config, key, raw[key])

    if "format" in raw:
        if not isinstance(raw["format"], str):
            raise ConfigError("'changelog.format' must be a string")
        config.format = raw["format"]

    if "output_file" in raw:
        if not isinstance(raw["output_file"], str):
            raise ConfigError("'changelog.output_file' must be a string")
        config.output_file = raw["output_file"]

    if raw.get("from_tag") is not None:
        # Tags such as 1.0 are read by YAML as floats.
        config.from_tag = str(raw["from_tag"])

    if "commit_types" in raw:
        config.commit_types = _parse_commit_types(raw["commit_types"])

    if "releases" in raw:
        config.releases = _parse_releases(raw["releases"])

    return config


def _parse_commit_types(value: Any) -> List[CommitType]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigError("'changelog.commit_types' must be a list")

    commit_types: List[CommitType] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, dict) or not isinstance(entry.get("type"), str):
            raise ConfigError(
                f"'changelog.commit_types[{index}]' must be a mapping with a 'type' string"
            )
        key = entry["type"]
        label = entry.get("title", entry.get("label", key.capitalize()))
        emoji = entry.get("emoji", "")
        commit_types.append(CommitType(key=key, label=str(label), emoji=str(emoji)))
    return commit_types


def _parse_releases(value: Any) -> Dict[str, ReleaseNotes]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError("'changelog.releases' must be a mapping of version to notes")

    releases: Dict[str, ReleaseNotes] = {}
    for version, notes in value.items():
        notes = notes or {}
        if not isinstance(notes, dict):
            raise ConfigError(f"'changelog.releases.{version}' must be a mapping")
        breaking = notes.get("breaking_changes") or []
        contributors = notes.get("contributors") or []
        if not isinstance(breaking, list) or not isinstance(contributors, list):
            raise ConfigError(
                f"'changelog.releases.{version}' lists must be YAML sequences"
            )
        highlights = notes.get("highlights")
        releases[str(version)] = ReleaseNotes(
            highlights=str(highlights).strip() if highlights is not None else None,
            breaking_changes=[str(item) for item in breaking],
            contributors=[str(item) for item in contributors],
        )
    return releases
