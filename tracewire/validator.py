"""Schema validation and loaders for config files and project descriptors."""

from __future__ import annotations

import json
from importlib import resources
from pathlib import Path

import jsonschema
from jsonschema import Draft202012Validator
from pydantic import ValidationError

from tracewire.errors import ConfigError
from tracewire.types import PluginConfig

# --- Schema loaders ---------------------------------------------------------


def _load_schema(package: str, resource_name: str) -> dict:
    with resources.files(package).joinpath(resource_name).open("r", encoding="utf-8") as f:
        return json.load(f)


def _config_schema() -> dict:
    return _load_schema("tracewire.schema", "config.schema.json")


def _project_schema() -> dict:
    return _load_schema("tracewire.schema", "project.schema.json")


def _resolved_modules_schema() -> dict:
    return _load_schema("tracewire.schema", "resolved-modules.schema.json")


# --- Public validators ------------------------------------------------------


def validate_config(data: dict) -> None:
    Draft202012Validator(_config_schema()).validate(data)


def validate_project(data: dict) -> None:
    Draft202012Validator(_project_schema()).validate(data)


def validate_resolved_modules(data: list) -> None:
    Draft202012Validator(_resolved_modules_schema()).validate(data)


# --- Loaders ----------------------------------------------------------------


def _read_json(path: Path):
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"{path}: invalid JSON: {exc}") from exc


def load_config(path: Path) -> PluginConfig:
    """Read, schema-check and parse a plugin config file."""
    data = _read_json(path)
    try:
        validate_config(data)
        return PluginConfig.model_validate(data)
    except (jsonschema.ValidationError, ValidationError) as exc:
        raise ConfigError(f"{path}: {exc}") from exc


def load_project_descriptor(path: Path) -> dict:
    data = _read_json(path)
    try:
        validate_project(data)
    except jsonschema.ValidationError as exc:
        raise ConfigError(f"{path}: {exc.message}") from exc
    return data


def load_resolved_modules(path: Path) -> list[dict]:
    data = _read_json(path)
    try:
        validate_resolved_modules(data)
    except jsonschema.ValidationError as exc:
        raise ConfigError(f"{path}: {exc.message}") from exc
    return data
