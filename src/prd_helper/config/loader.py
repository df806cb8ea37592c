"""
Configuration loader for prd_helper.

The tool reads an optional JSON configuration file named ``config.json``
in the ``~/.prd_helper/`` directory (or the directory named by the
``PRD_HELPER_HOME`` environment variable). Every key has a default, so a
missing file is not an error. A file that cannot be parsed, whose root
is not an object, or that holds a known key of the wrong type raises
:class:`ConfigError`.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILENAME = "config.json"
HOME_ENV_VAR = "PRD_HELPER_HOME"


class ConfigError(Exception):
    """Raised when the configuration file is malformed or invalid."""

    pass


@dataclass(frozen=True)
class AISettings:
    """Settings for the optional text-generation pass.

    Attributes
    ----------
    enabled : bool
        Whether to refine the report with the remote provider.
    provider : str
        Provider identifier, e.g. ``"openai"``.
    model : str
        Model name sent to the provider.
    endpoint : str
        Full URL of the chat-completions endpoint.
    api_key : str
        Credential; when empty, ``api_key_env`` is consulted.
    api_key_env : str
        Name of the environment variable holding the credential.
    timeout_ms : int
        Request timeout in milliseconds.
    max_diff_lines : int
        Line budget of the diff embedded in the prompt.
    max_diff_chars : int
        Character budget of the diff embedded in the prompt (0 disables).
    preview_prompt : bool
        Show the full prompt and require a typed confirmation.
    tone : str
        Tone label substituted into the prompt.
    prompt_template : str
        Path of a custom prompt template; empty uses the bundled one.
    """

    enabled: bool = False
    provider: str = "openai"
    model: str = "gpt-4o-mini"
    endpoint: str = "https://api.openai.com/v1/chat/completions"
    api_key: str = field(default="", repr=False)
    api_key_env: str = "PRD_HELPER_API_KEY"
    timeout_ms: int = 60000
    max_diff_lines: int = 1500
    max_diff_chars: int = 60000
    preview_prompt: bool = False
    tone: str = "neutral"
    prompt_template: str = ""

    def resolve_api_key(self) -> str:
        """Return the configured credential, falling back to the environment."""
        if self.api_key:
            return self.api_key
        return os.environ.get(self.api_key_env, "")


@dataclass(frozen=True)
class Settings:
    """Settings for report generation."""

    max_diff_lines: int = 2000
    include_files_section: bool = False
    base_branch: str = "main"
    ai: AISettings = field(default_factory=AISettings)

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-``None`` override applied.

        Keys prefixed with ``ai_`` are applied to :attr:`ai`.
        """
        top: Dict[str, Any] = {}
        ai: Dict[str, Any] = {}
        for key, value in overrides.items():
            if value is None:
                continue
            if key.startswith("ai_"):
                ai[key[3:]] = value
            else:
                top[key] = value
        settings = replace(self, **top)
        if ai:
            settings = replace(settings, ai=replace(settings.ai, **ai))
        return replace(settings, max_diff_lines=max(settings.max_diff_lines, 1))


_SETTINGS_TYPES = {
    "max_diff_lines": int,
    "include_files_section": bool,
    "base_branch": str,
}

_AI_TYPES = {
    "enabled": bool,
    "provider": str,
    "model": str,
    "endpoint": str,
    "api_key": str,
    "api_key_env": str,
    "timeout_ms": int,
    "max_diff_lines": int,
    "max_diff_chars": int,
    "preview_prompt": bool,
    "tone": str,
    "prompt_template": str,
}


def _get_config_directory() -> Path:
    """Return the per-user directory holding the configuration and state files."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override)
    return Path.home() / ".prd_helper"


def _validate(data: Dict[str, Any], types: Dict[str, type], prefix: str = "") -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for key, expected in types.items():
        if key not in data:
            continue
        value = data[key]
        # bool is a subclass of int; reject it where a number is expected
        if expected is int and isinstance(value, bool) or not isinstance(value, expected):
            raise ConfigError(f"'{prefix}{key}' must be {'an' if expected is int else 'a'} {expected.__name__}")
        values[key] = value
    unknown = sorted(set(data) - set(types) - {"ai"})
    if unknown:
        logger.warning("Ignoring unknown configuration keys: %s", ", ".join(f"{prefix}{key}" for key in unknown))
    return values


def load_config(config_path: Optional[Path] = None) -> Settings:
    """Load the configuration and return validated :class:`Settings`.

    Parameters
    ----------
    config_path : Path, optional
        Explicit configuration file. Defaults to ``config.json`` in the
        per-user directory.

    Returns
    -------
    Settings
        Defaults overlaid with the values found in the file.

    Raises
    ------
    ConfigError
        If the file is unreadable, not valid JSON, or has invalid values.
    """
    path = config_path or _get_config_directory() / CONFIG_FILENAME
    if not path.exists():
        logger.debug("No configuration file at %s; using defaults", path)
        return Settings().with_overrides()

    try:
        content = path.read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {path.name}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a JSON object")

    values = _validate(data, _SETTINGS_TYPES)
    ai_data = data.get("ai", {})
    if not isinstance(ai_data, dict):
        raise ConfigError("'ai' must be an object")
    ai_values = _validate(ai_data, _AI_TYPES, prefix="ai.")

    settings = Settings(ai=AISettings(**ai_values), **values).with_overrides()
    logger.debug("Loaded configuration from: %s", path)
    return settings
