"""Profile configuration stored at ~/.termpilot/config.json."""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, PrivateAttr, ValidationError

from termpilot.errors import ConfigError
from termpilot.utils.logging import get_logger

logger = get_logger(__name__)

HOME_ENV_VAR = "TERMPILOT_HOME"
CONFIG_DIR_NAME = ".termpilot"
CONFIG_FILE_NAME = "config.json"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_PROFILE_NAME = "default"


class Profile(BaseModel):
    """Credentials and model selection for one completion provider."""

    api_key: str = ""
    base_url: str = ""
    model: str = DEFAULT_MODEL
    provider: Literal["openai", "anthropic"] = "openai"

    @property
    def is_valid(self) -> bool:
        return bool(self.api_key)


class Config(BaseModel):
    """All profiles plus the name of the active one."""

    profiles: dict[str, Profile] = Field(default_factory=dict)
    active_profile: str = DEFAULT_PROFILE_NAME

    _path: Path | None = PrivateAttr(default=None)

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def current_profile(self) -> Profile | None:
        return self.profiles.get(self.active_profile)

    @property
    def is_valid(self) -> bool:
        profile = self.current_profile
        return profile is not None and profile.is_valid

    @property
    def model(self) -> str:
        profile = self.current_profile
        return profile.model if profile else DEFAULT_MODEL

    def add_profile(self, name: str, profile: Profile, activate: bool = False) -> None:
        self.profiles[name] = profile
        if activate or self.active_profile not in self.profiles:
            self.active_profile = name

    def use_profile(self, name: str) -> None:
        if name not in self.profiles:
            raise ConfigError(f"profile '{name}' does not exist")
        self.active_profile = name

    def remove_profile(self, name: str) -> None:
        if name not in self.profiles:
            raise ConfigError(f"profile '{name}' does not exist")
        if len(self.profiles) == 1:
            raise ConfigError("cannot remove the only profile")
        del self.profiles[name]
        if self.active_profile == name:
            self.active_profile = next(iter(self.profiles), DEFAULT_PROFILE_NAME)

    def save(self, path: Path | None = None) -> Path:
        """Write the config as JSON, readable by the owner only."""
        target = path or self._path or get_config_path()
        target.parent.mkdir(parents=True, exist_ok=True)
        # Restrict the file before the API keys are written into it.
        target.touch(mode=0o600, exist_ok=True)
        target.chmod(0o600)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        self._path = target
        return target


def get_config_path() -> Path:
    """Return the config file path, honouring TERMPILOT_HOME."""
    home = os.getenv(HOME_ENV_VAR)
    base = Path(home) if home else Path.home()
    return base / CONFIG_DIR_NAME / CONFIG_FILE_NAME


def default_config() -> Config:
    return Config(profiles={DEFAULT_PROFILE_NAME: Profile()}, active_profile=DEFAULT_PROFILE_NAME)


def load_config(path: Path | None = None) -> Config:
    """Load the config file, creating a default one when it does not exist.

    When the active profile is missing, the first defined profile becomes active.

    Raises:
        ConfigError: If the file cannot be read or parsed
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        logger.info(f"Creating default config at {config_path}")
        config = default_config()
        try:
            config.save(config_path)
        except OSError as e:
            raise ConfigError(f"failed to create config at {config_path}: {e}") from e
        return config

    try:
        config = Config.model_validate_json(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"failed to read config {config_path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"invalid config {config_path}: {e}") from e

    config._path = config_path

    if not config.profiles:
        raise ConfigError(f"no profiles defined in {config_path}")

    if config.active_profile not in config.profiles:
        fallback = next(iter(config.profiles))
        logger.warning(f"Active profile '{config.active_profile}' not found, using '{fallback}'")
        config.active_profile = fallback

    return config
