"""Local ship configuration.

Settings come from constructor kwargs (the local JSON config file) and
`DMBOT_*` environment variables; file values win over the environment.
On first run the config file does not exist yet: a template is written
and start-up stops so the user can fill in the ship's URL and `+code`.
"""

import json
from pathlib import Path
from typing import Final

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH: Final[Path] = Path("ship_config.json")


class ConfigBootstrapError(RuntimeError):
    """Raised after writing a template config that still needs filling in."""


class Config(BaseSettings):
    """Settings for one bot session.

    Invariant:
        `ship_url` has an http(s) scheme and no trailing `/`.
        `poll_interval_seconds` is strictly positive.
    """

    model_config = SettingsConfigDict(env_prefix="DMBOT_")

    ship_url: str = "http://0.0.0.0:8080"
    ship_code: str = ""
    poll_interval_seconds: float = 1.0
    reply_text: str = "Calm Computing ~"

    @field_validator("ship_url")
    @classmethod
    def _normalize_ship_url(cls, value: str) -> str:
        url = value.strip().rstrip("/")
        if not url.startswith(("http://", "https://")):
            raise ValueError(f"ship_url must start with http:// or https://: {value!r}")
        return url

    @field_validator("poll_interval_seconds")
    @classmethod
    def _validate_poll_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"poll_interval_seconds must be > 0; got {value}")
        return value


def _write_template(path: Path) -> None:
    template = {"ship_url": "http://0.0.0.0:8080", "ship_code": ""}
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(template, indent=2) + "\n", encoding="utf-8")


def load_local_config(path: Path = DEFAULT_CONFIG_PATH) -> Config:
    """Load `path` into a `Config`, bootstrapping a template when missing.

    Raises:
        ConfigBootstrapError: `path` did not exist and a template was written,
            or `ship_code` is still empty.
        ValueError: the file is not a JSON object or fails validation.
    """

    path = path.expanduser()
    if not path.exists():
        _write_template(path)
        raise ConfigBootstrapError(
            f"Created a template config at {path}. "
            "Fill in ship_url and ship_code, then run again."
        )

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")

    # Blank template fields fall through to the environment.
    config = Config(**{key: value for key, value in raw.items() if value != ""})
    if not config.ship_code:
        raise ConfigBootstrapError(
            f"ship_code is empty in {path}. Fill in the ship's +code and run again."
        )
    return config
