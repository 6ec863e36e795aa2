"""Configuration management for the Santa Hat Avatar Generator.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the SANTAHAT_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (SANTAHAT_* prefix)
2. .env file in the project root
3. Default values defined in SantaHatConfig

Example .env file:
    SANTAHAT_MODEL_ID=gemini-2.5-flash-image
    SANTAHAT_PADDING_FACTOR=1.6
    SANTAHAT_CREDENTIAL_FILE=~/.santahat/credentials.json
    SANTAHAT_SERVER_PORT=7860

Note that the Gemini API key itself is *not* a SANTAHAT_ setting.  It is
either stored through the credential store or picked up from the plain
``API_KEY`` / ``VITE_API_KEY`` / ``REACT_APP_API_KEY`` variables, in that
order (see ``api_key_env_vars``).

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from santahat.core.config import config

    print(config.model_id)
    print(config.padding_factor)

Compositing Parameters
----------------------
The avatar compositor parameters are approximate visual settings, not exact
filter kernels:
- padding_factor: canvas side = floor(max(width, height) * padding_factor)
- background_blur: Gaussian blur radius of the cover-scaled backdrop
- background_brightness: brightness multiplier of the backdrop
- shadow_blur / shadow_offset / shadow_opacity: drop shadow under the subject

See Also
--------
- SantaHatConfig: Full configuration class documentation
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .credentials import ENV_KEY_CANDIDATES

DEFAULT_MODEL_ID = "gemini-2.5-flash-image"
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class SantaHatConfig(BaseSettings):
    """Main configuration for the Santa Hat Avatar Generator.

    Values are loaded from environment variables with the SANTAHAT_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Generation Settings:
        model_id : str
            Remote Gemini model identifier
        api_key_env_vars : list[str]
            Ordered environment variables consulted for a fallback API key

    Compositor Settings:
        padding_factor : float
            Growth factor of the square canvas (must be > 1)
        background_blur : float
            Blur radius of the backdrop in pixels
        background_brightness : float
            Brightness multiplier of the backdrop
        shadow_blur : float
            Blur radius of the drop shadow in pixels
        shadow_offset : int
            Vertical offset of the drop shadow in pixels
        shadow_opacity : float
            Opacity of the drop shadow (0-1)

    Upload Settings:
        max_upload_bytes : int
            Largest accepted input file

    Paths:
        credential_file : Path
            JSON file holding the stored API key

    Server Settings:
        server_host : str
            Bind address for uvicorn
        server_port : int
            Port for uvicorn (1024-65535)
        log_level : str
            Root logging level

    Examples
    --------
    Create a custom configuration:

        >>> custom_config = SantaHatConfig(
        ...     padding_factor=2.0,
        ...     credential_file="/tmp/creds.json",
        ... )
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SANTAHAT_",
        case_sensitive=False,
        extra="ignore",
    )

    # Generation settings
    model_id: str = Field(
        default=DEFAULT_MODEL_ID,
        description="Gemini model used for the hat edit",
    )
    api_key_env_vars: list[str] = Field(
        default_factory=lambda: list(ENV_KEY_CANDIDATES),
        description="Environment variables checked in order for a fallback API key",
    )

    # Compositor settings
    padding_factor: float = Field(
        default=1.6,
        description="Square canvas side relative to the longest image side",
        gt=1.0,
        le=4.0,
    )
    background_blur: float = Field(default=40.0, ge=0.0)
    background_brightness: float = Field(default=1.1, gt=0.0)
    shadow_blur: float = Field(default=25.0, ge=0.0)
    shadow_offset: int = Field(default=10)
    shadow_opacity: float = Field(default=0.25, ge=0.0, le=1.0)

    # Upload settings
    max_upload_bytes: int = Field(
        default=DEFAULT_MAX_UPLOAD_BYTES,
        description="Maximum accepted upload size in bytes",
        gt=0,
    )

    # Paths
    credential_file: Path = Field(
        default=Path.home() / ".santahat" / "credentials.json",
        description="JSON file holding the stored Gemini API key",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address (0.0.0.0 for local network)",
    )
    server_port: int = Field(
        default=7860,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: str = Field(default="INFO")

    def __init__(self, **kwargs):
        """Initialize configuration and create the credential directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.credential_file = self.credential_file.expanduser()
        self.credential_file.parent.mkdir(parents=True, exist_ok=True)


# Global configuration instance
# Loads values from environment variables (SANTAHAT_* prefix) and .env file.
config = SantaHatConfig()
