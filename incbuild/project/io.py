"""Project description loading.

The project file is YAML (``.yaml``/``.yml``) or JSON (``.json``); the format
is picked from the file extension.
"""

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from incbuild.errors import PROJECT_NOT_FOUND, ProjectLoadError
from incbuild.project.schema import ProjectSchema


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a YAML mapping, got {type(data).__name__}")
    return data


def load_json(path: Path) -> dict[str, Any]:
    """Load a JSON file and return its contents as a dict.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed JSON content as a dictionary.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def load_project(path: Path) -> ProjectSchema:
    """Load and validate a project description.

    Args:
        path: Path to the project file.

    Returns:
        Validated ProjectSchema instance.

    Raises:
        ProjectLoadError: If the file is missing, unparseable, or invalid.
    """
    suffix = path.suffix.lower()
    if suffix not in (".yaml", ".yml", ".json"):
        raise ProjectLoadError(
            f"Unsupported file extension '{suffix}'. Use .yaml, .yml, or .json"
        )

    try:
        data = load_json(path) if suffix == ".json" else load_yaml(path)
    except FileNotFoundError:
        raise ProjectLoadError(
            f"Project file not found: {path}", code=PROJECT_NOT_FOUND
        ) from None
    except (yaml.YAMLError, json.JSONDecodeError, ValueError) as e:
        raise ProjectLoadError(f"Cannot parse {path}: {e}") from e

    try:
        return ProjectSchema.model_validate(data)
    except ValidationError as e:
        raise ProjectLoadError(f"Invalid project file {path}:\n{e}") from e


__all__ = [
    "load_json",
    "load_project",
    "load_yaml",
]
