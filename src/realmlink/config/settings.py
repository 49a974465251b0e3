"""Application settings loaded from environment variables and .env."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class XboxSettings(BaseSettings):
    """Microsoft account / Xbox Live identity settings.

    Hey future me - the defaults are the Bedrock Android title. That title id is public and
    is allowed to use the device-code grant, so realmlink works out of the box. Only override
    client_id if you have your own Azure/Xbox title registered.
    """

    model_config = SettingsConfigDict(env_prefix="XBOX_", extra="ignore")

    client_id: str = "0000000048183522"
    scope: str = "service::user.auth.xboxlive.com::MBI_SSL"
    device_code_url: str = "https://login.live.com/oauth20_connect.srf"
    token_url: str = "https://login.live.com/oauth20_token.srf"  # nosec B105 - endpoint URL
    user_auth_url: str = "https://user.auth.xboxlive.com/user/authenticate"
    xsts_url: str = "https://xsts.auth.xboxlive.com/xsts/authorize"
    request_timeout: float = 30.0


class RealmsSettings(BaseSettings):
    """Bedrock Realms API settings."""

    model_config = SettingsConfigDict(env_prefix="REALMS_", extra="ignore")

    base_url: str = "https://pocket.realms.minecraft.net"
    relying_party: str = "https://pocket.realms.minecraft.net/"
    # Realms rejects clients whose version it considers outdated - bump with game releases.
    client_version: str = "1.21.94"
    user_agent: str = "MCPE/UWP"
    request_timeout: float = 30.0


class StorageSettings(BaseSettings):
    """Where the session record lives."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_", extra="ignore")

    data_dir: Path = Path("./data")
    session_file: str = "bedrock_session.json"

    @property
    def session_path(self) -> Path:
        """Full path of the single session slot."""
        return self.data_dir / self.session_file


class AuthSettings(BaseSettings):
    """Login flow settings."""

    model_config = SettingsConfigDict(env_prefix="AUTH_", extra="ignore")

    # How long POST /api/auth/login waits for the device code before giving up.
    challenge_timeout: float = 30.0


class ObservabilitySettings(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="OBSERVABILITY_", extra="ignore")

    log_json_format: bool = False


class Settings(BaseSettings):
    """Root settings object.

    Nested groups read their own env prefixes (XBOX_, REALMS_, STORAGE_, ...), so
    `STORAGE_DATA_DIR=/var/lib/realmlink` works without touching this class.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    app_name: str = "realmlink"
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = Field(default=8000, ge=1, le=65535)

    xbox: XboxSettings = Field(default_factory=XboxSettings)
    realms: RealmsSettings = Field(default_factory=RealmsSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)


# Hey future me - cached so every Depends(get_settings) sees the same object. Tests that need
# different values should build Settings(...) directly instead of fighting the cache.
@lru_cache
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
