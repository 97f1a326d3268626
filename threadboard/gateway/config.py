import logging
import os
import threading

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)
_config_lock = threading.Lock()


class StorageConfig(BaseModel):
    """Connection settings for S3-compatible object storage (MODE=OPS)."""

    region: str | None = Field(default=None)
    endpoint_url: str | None = Field(default=None)
    access_key_id: str | None = Field(default=None)
    secret_access_key: str | None = Field(default=None)
    download_url_image: str | None = Field(default=None)
    download_url_video: str | None = Field(default=None)

    def download_url(self, bucket: str) -> str | None:
        """Public base URL for objects in ``bucket``."""
        if bucket == "video":
            return self.download_url_video
        return self.download_url_image


class GitHubConfig(BaseModel):
    """OAuth application settings for GitHub login."""

    client_id: str | None = Field(default=None)
    client_secret: str | None = Field(default=None)
    auth_url: str = Field(default="https://github.com/login/oauth")
    api_url: str = Field(default="https://api.github.com")

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)


class GatewayConfig(BaseModel):
    """Configuration for the API gateway."""

    host: str = Field(default="0.0.0.0", description="Host to bind the gateway server")
    port: int = Field(default=8001, description="Port to bind the gateway server")
    mode: str = Field(default="DEV", description="DEV stores uploads locally, OPS uses object storage")
    upload_dir: str = Field(default="files", description="Local directory for uploads outside OPS mode")
    session_max_age_days: int = Field(default=30, description="Lifetime of a login session")
    production: bool = Field(default=False, description="Require env secrets and mark cookies Secure")
    api_rate_limit: int = Field(default=120, description="Per-user content/like requests per minute")
    auth_rate_limit: int = Field(default=10, description="Per-IP signup/login requests per minute")
    storage: StorageConfig = Field(default_factory=StorageConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)

    @property
    def uses_object_storage(self) -> bool:
        return self.mode.upper() == "OPS"


_gateway_config: GatewayConfig | None = None


def get_gateway_config() -> GatewayConfig:
    """Get the gateway configuration from environment variables.

    Returns:
        GatewayConfig with current settings, cached after the first call.
    """
    global _gateway_config
    if _gateway_config is not None:
        return _gateway_config
    with _config_lock:
        if _gateway_config is not None:  # Double-check after acquiring lock
            return _gateway_config

        _gateway_config = GatewayConfig(
            host=os.environ.get("GATEWAY_HOST", "0.0.0.0"),
            port=int(os.environ.get("GATEWAY_PORT", "8001")),
            mode=os.environ.get("MODE", "DEV"),
            upload_dir=os.environ.get("UPLOAD_DIR", "files"),
            session_max_age_days=int(os.environ.get("SESSION_MAX_AGE_DAYS", "30")),
            production=bool(os.environ.get("REQUIRE_ENV_SECRETS")),
            api_rate_limit=int(os.environ.get("API_RATE_LIMIT", "120")),
            auth_rate_limit=int(os.environ.get("AUTH_RATE_LIMIT", "10")),
            storage=StorageConfig(
                region=os.environ.get("STORAGE_REGION"),
                endpoint_url=os.environ.get("STORAGE_ENDPOINT_URL"),
                access_key_id=os.environ.get("STORAGE_ACCESS_KEY_ID"),
                secret_access_key=os.environ.get("STORAGE_SECRET_ACCESS_KEY"),
                download_url_image=os.environ.get("STORAGE_DOWNLOAD_URL_IMAGE"),
                download_url_video=os.environ.get("STORAGE_DOWNLOAD_URL_VIDEO"),
            ),
            github=GitHubConfig(
                client_id=os.environ.get("GITHUB_CLIENT_ID"),
                client_secret=os.environ.get("GITHUB_CLIENT_SECRET"),
                auth_url=os.environ.get("GITHUB_AUTH_URL") or "https://github.com/login/oauth",
                api_url=os.environ.get("GITHUB_API_URL") or "https://api.github.com",
            ),
        )
        logger.info(f"Gateway config loaded: mode={_gateway_config.mode}, port={_gateway_config.port}")
        return _gateway_config


def reset_gateway_config() -> None:
    """Drop the cached configuration so the next call re-reads the environment."""
    global _gateway_config
    with _config_lock:
        _gateway_config = None
