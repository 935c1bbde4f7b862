"""Configuration loading and credential resolution for the CLI.

The core pipeline never touches the disk or the environment: it receives an
immutable :class:`~restpipe.models.PipelineConfig` at construction time.
This module is the CLI's bridge to the outside world:

* :func:`load_pipeline_config` -- reads a ``PipelineConfig`` from a JSON
  file (``--config`` or ``$RESTPIPE_CONFIG``).
* :func:`resolve_credential` -- reads secrets from env vars, files, or an
  interactive prompt.
"""

from __future__ import annotations

import getpass
import json
import os
import sys
from pathlib import Path
from typing import Optional, Union

from restpipe.exceptions import ConfigError
from restpipe.models import PipelineConfig

CONFIG_ENV_VAR = "RESTPIPE_CONFIG"


def load_pipeline_config(path: Optional[Union[str, Path]] = None) -> PipelineConfig:
    """Load a :class:`~restpipe.models.PipelineConfig` from a JSON file.

    Args:
        path: File to read. Falls back to ``$RESTPIPE_CONFIG``; when neither
            is set the default configuration is returned.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or fails
            Pydantic validation.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR) or None
    if path is None:
        return PipelineConfig()
    config_path = Path(path).expanduser()
    if not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        return PipelineConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {config_path}: {exc}") from exc


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)
        - anything else is used literally

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(f"Environment variable '{var_name}' is not set (source: {source})")
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError("Cannot prompt for credentials: stdin is not a TTY (source: prompt)")
        return getpass.getpass("Enter credential: ")

    return source
