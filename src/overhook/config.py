"""Configuration management for overhook.

Configuration Discovery Precedence (Highest to Lowest Priority):
===============================================================

1. **OVERHOOK_CONFIG_DIR Environment Variable** (Highest Priority)
   - Looks for: `${OVERHOOK_CONFIG_DIR}/overhook.yaml`
   - Use case: Development, testing, custom deployments

2. **~/.overhook Directory** (Fallback)
   - Looks for: `~/.overhook/overhook.yaml`

The first existing `overhook.yaml` found in this order is used.
If none is found, default configuration is applied.

Example overhook.yaml:
--------
overhook:
  strict: false
  extensions:
    - myapp.extensions.shared_partials          # module, registers on import
    - myapp.extensions.audit.AUDIT_UNIT         # ExtensionUnit with a target
    - unit: myapp.extensions.audit.AUDIT_UNIT   # explicit target
      target: myapp.controllers.OrdersController
  attachment_styles:
    mini: "48x48>"
    small: "100x100>"
"""

import logging
import os
import re
import threading
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# ImageMagick-style geometry: WIDTHxHEIGHT with an optional resize modifier
GEOMETRY_PATTERN = re.compile(r"^\d*x?\d*[>#<^!%@]?$")

DEFAULT_ATTACHMENT_STYLES = {
    "mini": "48x48>",
    "small": "100x100>",
    "product": "240x240>",
    "large": "600x600>",
}


class OverhookConfig(BaseSettings):
    """Main configuration for overhook that reads from overhook.yaml."""

    model_config = SettingsConfigDict(
        env_prefix="OVERHOOK_",
        case_sensitive=False,
        extra="ignore",
    )

    # Core settings
    debug: bool = False

    # Raise on overrides for actions the controller does not define
    strict: bool = False

    # Extension entries in load order (import paths or dict with unit/target)
    extensions: list[str | dict[str, Any]] = Field(default_factory=list)

    # Attachment style name -> geometry, consulted by the storage pipeline only
    attachment_styles: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_ATTACHMENT_STYLES))

    # Path to overhook config
    config_path: Path = Field(default_factory=lambda: Path("./overhook.yaml"))

    @field_validator("attachment_styles")
    @classmethod
    def _validate_geometry(cls, value: dict[str, str]) -> dict[str, str]:
        for name, geometry in value.items():
            if not geometry or not GEOMETRY_PATTERN.match(geometry) or not re.search(r"\d", geometry):
                raise ValueError(f"Invalid geometry {geometry!r} for attachment style '{name}'")
        return value

    @classmethod
    def from_yaml(cls, yaml_path: Path, **kwargs: Any) -> "OverhookConfig":
        """Load configuration from an overhook.yaml file.

        Args:
            yaml_path: Path to the overhook.yaml file
            **kwargs: Additional keyword arguments

        Returns:
            OverhookConfig instance

        Raises:
            pydantic.ValidationError: If a section has invalid values
        """
        data: dict[str, Any] = {}
        if yaml_path.exists():
            with yaml_path.open() as f:
                raw = yaml.safe_load(f) or {}
            data = raw.get("overhook", {}) or {}

        settings: dict[str, Any] = {"config_path": yaml_path}
        for key in ("debug", "strict", "extensions", "attachment_styles"):
            if key in data:
                settings[key] = data[key]

        if "attachment_styles" in data and not isinstance(data["attachment_styles"], dict):
            logger.warning(f"Invalid attachment_styles config format: {type(data['attachment_styles'])}")
            del settings["attachment_styles"]

        settings.update(kwargs)
        return cls(**settings)


# Global configuration instance
_config_instance: OverhookConfig | None = None
_config_lock = threading.Lock()


def get_config() -> OverhookConfig:
    """Get the configuration instance."""
    global _config_instance

    if _config_instance is None:
        with _config_lock:
            # Double-check locking pattern
            if _config_instance is None:
                env_config_dir = os.environ.get("OVERHOOK_CONFIG_DIR")
                if env_config_dir:
                    config_dir = Path(env_config_dir)
                    logger.info(f"Using config directory from environment: {config_dir}")
                else:
                    config_dir = Path.home() / ".overhook"

                yaml_path = config_dir / "overhook.yaml"
                if yaml_path.exists():
                    logger.info(f"Loading overhook config from: {yaml_path}")
                    _config_instance = OverhookConfig.from_yaml(yaml_path)
                else:
                    logger.info(f"overhook.yaml not found at {yaml_path}, using default config")
                    _config_instance = OverhookConfig(config_path=yaml_path)

    return _config_instance


def set_config_instance(config: OverhookConfig) -> None:
    """Set the global configuration instance (for testing)."""
    global _config_instance
    _config_instance = config


def clear_config_instance() -> None:
    """Clear the global configuration instance (for testing)."""
    global _config_instance
    _config_instance = None
