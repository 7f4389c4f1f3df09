"""Configuration loading and validation.

Usage:
    config = load("notify-config.yaml", {"env": "UAT"})  # raises ConfigError on bad config
    config.require("url", "host_url")                    # raises if mandatory values are absent
    generate_template("notify-config.yaml")              # writes example file to disk

Precedence: command-line overrides, then environment variables
(NOTIFY_WEBHOOK_URL, NOTIFY_HOST_URL), then the YAML file, then defaults.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = "notify-config.yaml"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# Config dataclass
# ---------------------------------------------------------------------------

@dataclass
class Config:
    url: str = ""
    host_url: str = ""
    path: str = "./TestResult.json"
    env: str = "current environment"
    branch: str = "Current branch"
    output: str = "./output"
    output_format: str = "csv"
    separator: str = ";"
    threshold: int = 85
    timezone: str = "Europe/Paris"
    regex: str | None = None
    case_sensitive: bool = False
    # Names of options that fell back to their default value
    defaulted: set[str] = field(default_factory=set, compare=False, repr=False)

    def require(self, *names: str) -> None:
        """Raise ConfigError listing every mandatory option in *names* that is empty."""
        errors = [
            f"  - '{name}' is missing{_ENV_HINTS.get(name, '')}"
            for name in names
            if not getattr(self, name)
        ]
        if errors:
            raise ConfigError("Missing mandatory option(s):\n" + "\n".join(errors))


# YAML location of each option: (section, key)
_FILE_KEYS: dict[str, tuple[str, str]] = {
    "url": ("webhook", "url"),
    "host_url": ("webhook", "host_url"),
    "path": ("report", "path"),
    "output": ("report", "output"),
    "output_format": ("report", "output_format"),
    "separator": ("report", "separator"),
    "threshold": ("report", "threshold"),
    "env": ("display", "env"),
    "branch": ("display", "branch"),
    "timezone": ("display", "timezone"),
    "regex": ("commits", "regex"),
    "case_sensitive": ("commits", "case_sensitive"),
}

_ENV_VARS: dict[str, str] = {
    "url": "NOTIFY_WEBHOOK_URL",
    "host_url": "NOTIFY_HOST_URL",
}

_ENV_HINTS = {
    name: f" (or set the {var} environment variable)" for name, var in _ENV_VARS.items()
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load(config_path: str | None = None, overrides: dict[str, Any] | None = None) -> Config:
    """Build a Config from the YAML file, the environment and *overrides*.

    The file is optional when *config_path* is not given; an explicit path
    that does not exist is an error. ``None`` values in *overrides* are
    ignored.

    Raises:
        ConfigError: if the file is missing (explicit path), malformed, or
                     holds a value of the wrong type.
    """
    raw = _read_file(config_path)
    overrides = overrides or {}

    values: dict[str, Any] = {}
    for name, (section, key) in _FILE_KEYS.items():
        block = raw.get(section) or {}
        if not isinstance(block, dict):
            raise ConfigError(f"'{section}' must be a mapping in the configuration file.")
        if block.get(key) is not None:
            values[name] = block[key]

    for name, var in _ENV_VARS.items():
        if os.environ.get(var):
            values[name] = os.environ[var]

    values.update({k: v for k, v in overrides.items() if v is not None})

    unknown = set(values) - {f.name for f in fields(Config)}
    if unknown:
        raise ConfigError(f"Unknown option(s): {', '.join(sorted(unknown))}")

    config = Config(**values)
    config.defaulted = {name for name in _FILE_KEYS if name not in values}
    _coerce(config)
    return config


def _read_file(config_path: str | None) -> dict:
    path = Path(config_path or DEFAULT_CONFIG_PATH)

    if not path.exists():
        if config_path:
            raise ConfigError(
                f"Config file not found: '{config_path}'\n"
                "Run `teams-notify init` to generate a template."
            )
        return {}

    try:
        with path.open(encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse '{path}': {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"'{path}' must be a YAML mapping at the top level.")
    return raw


def _coerce(config: Config) -> None:
    """Normalise types of values coming from YAML or the environment."""
    config.url = str(config.url).strip()
    config.host_url = str(config.host_url).strip()
    try:
        config.threshold = int(config.threshold)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"'threshold' must be an integer, got '{config.threshold}'") from exc
    if not 0 <= config.threshold <= 100:
        raise ConfigError(f"'threshold' must be between 0 and 100, got {config.threshold}")
    if not config.separator:
        raise ConfigError("'separator' must not be empty")
    config.case_sensitive = _as_bool("case_sensitive", config.case_sensitive)


_TRUE_STRINGS = ("true", "yes", "on", "1")
_FALSE_STRINGS = ("false", "no", "off", "0")


def _as_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ConfigError(f"'{name}' must be true or false, got '{value}'")


# ---------------------------------------------------------------------------
# Template generator (used by `init` command)
# ---------------------------------------------------------------------------

TEMPLATE = """\
webhook:
  url: "https://outlook.office.com/webhook/WEBHOOK_URL"   # or NOTIFY_WEBHOOK_URL
  host_url: "https://ci.example.com/artifacts/"            # prefix for exported report links

report:
  path: "./TestResult.json"
  output: "./output"
  output_format: "csv"
  separator: ";"
  threshold: 85

display:
  env: "UAT"
  branch: "develop"
  timezone: "Europe/Paris"

commits:
  # regex: "[0-9]{5,} / (Feature|Fix).*"
  case_sensitive: false
"""


def generate_template(output_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Write a template notify-config.yaml to *output_path*.

    Raises:
        ConfigError: if the file already exists (to avoid overwriting the webhook URL).
    """
    path = Path(output_path)
    if path.exists():
        raise ConfigError(
            f"'{output_path}' already exists. Remove it first or choose a different path."
        )
    path.write_text(TEMPLATE, encoding="utf-8")
