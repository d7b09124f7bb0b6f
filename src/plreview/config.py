"""Review configuration loaded from ``plreview.yml``."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "plreview.yml"

DEFAULT_API_URL = "https://api.github.com/repos/{owner}/{repo}/pulls/{pull_number}/comments"


class ConfigError(Exception):
    """Raised when ``plreview.yml`` contains values of the wrong type."""


@dataclass(frozen=True)
class ReviewConfig:
    """Settings shared by the rules, the analyzer and the publisher."""

    # Generated routines whose parameter order is not checked.
    exempt_routines: tuple[str, ...] = ("Update___", "Check_Common___", "Check_Update___")
    # Parameter name that never takes part in IN ordering checks.
    exempt_parameter: str = "objid_"
    parameter_suffix: str = "_"
    rowtype_suffix: str = "%ROWTYPE"
    extra_builtin_functions: tuple[str, ...] = ()
    issues_file: str = "comments.json"
    token_env: str = "GH_TOKEN"
    api_url: str = DEFAULT_API_URL
    fallback_path: str = "workspace/Test.plsql"
    timeout: float = 30.0
    source: Path | None = field(default=None, compare=False)


_STRING_KEYS = frozenset(
    {"exempt_parameter", "parameter_suffix", "rowtype_suffix", "issues_file", "token_env",
     "api_url", "fallback_path"}
)
_LIST_KEYS = frozenset({"exempt_routines", "extra_builtin_functions"})


def parse_config(raw: dict[str, object], *, source: Path | None = None) -> ReviewConfig:
    """Build a :class:`ReviewConfig` from a parsed YAML mapping.

    Unknown keys are ignored with a warning.

    Raises
    ------
    ConfigError
        If a known key has a value of the wrong type.
    """
    known = {f.name for f in fields(ReviewConfig)} - {"source"}
    kwargs: dict[str, object] = {}

    for key, value in raw.items():
        if key not in known:
            logger.warning("Ignoring unknown config key %r", key)
            continue
        if key in _STRING_KEYS:
            if not isinstance(value, str):
                msg = f"Config key {key!r} must be a string, got {type(value).__name__}"
                raise ConfigError(msg)
            kwargs[key] = value
        elif key in _LIST_KEYS:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                msg = f"Config key {key!r} must be a list of strings"
                raise ConfigError(msg)
            kwargs[key] = tuple(value)
        elif key == "timeout":
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                msg = f"Config key 'timeout' must be a positive number, got {value!r}"
                raise ConfigError(msg)
            kwargs[key] = float(value)

    return ReviewConfig(source=source, **kwargs)  # type: ignore[arg-type]


def load_config(path: Path | None = None) -> ReviewConfig:
    """Load configuration from *path*, or ``plreview.yml`` in the working directory.

    Falls back to defaults when the file is missing or cannot be parsed.
    """
    config_path = path if path is not None else Path.cwd() / CONFIG_FILENAME
    if not config_path.is_file():
        return ReviewConfig()

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using default settings", config_path)
        return ReviewConfig()

    if data is None:
        return ReviewConfig(source=config_path)
    if not isinstance(data, dict):
        logger.warning("%s is not a mapping, using default settings", config_path)
        return ReviewConfig()

    return parse_config(data, source=config_path)
