"""
Shared configuration management for the IRIS gateway client.

``ClientConfig`` is the plain options object handed to the client core.
``IrisSettings`` loads it from the environment (and a ``.env`` file), picking
production or local endpoints and credentials from ``IRIS_ENV``.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError

DEFAULT_API_URL = "https://apiv2.heyiris.io"
DEFAULT_IRIS_URL = "https://heyiris.io"
LOCAL_API_URL = "https://local.raichu.freelabel.net"
LOCAL_IRIS_URL = "https://local.iris.freelabel.net"


class ClientConfig(BaseModel):
    """Options consumed by the gateway client."""

    api_key: Optional[str] = None
    user_id: Optional[int] = None

    # Backend hosts
    api_url: str = DEFAULT_API_URL
    iris_url: str = DEFAULT_IRIS_URL
    base_url: str = DEFAULT_API_URL

    # Transport
    timeout: float = Field(default=30.0, gt=0)
    retries: int = Field(default=3, ge=1)

    # Optional OAuth2 client credentials
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    webhook_secret: Optional[str] = None
    debug: bool = False
    log_level: str = "info"

    # Workflow polling (milliseconds / seconds)
    polling_interval: int = 500
    max_polling_duration: int = 300

    @field_validator("api_url", "iris_url", "base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def has_client_credentials(self) -> bool:
        """Check if client credentials are configured."""
        return self.client_id is not None and self.client_secret is not None

    def require_user_id(self) -> int:
        if self.user_id is None:
            raise ConfigurationError(
                "user_id is required for this operation. "
                "Set IRIS_USER_ID or pass user_id, or use IRIS.as_user(user_id)."
            )
        return self.user_id

    def masked(self) -> Dict[str, Any]:
        """Config values safe for display: long strings keep only 4 characters at each end."""
        masked: Dict[str, Any] = {}
        for key, value in self.model_dump().items():
            if key in ("api_key", "client_secret", "webhook_secret", "client_id") \
                    and isinstance(value, str) and len(value) > 8:
                masked[key] = f"{value[:4]}****{value[-4:]}"
            else:
                masked[key] = value
        return masked


class IrisSettings(BaseSettings):
    """Environment-backed settings (``IRIS_*`` plus the ``FL_API_*`` host variables)."""

    model_config = SettingsConfigDict(
        env_prefix="IRIS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    env: str = "production"
    log_level: str = "info"

    # Credentials
    api_key: Optional[str] = None
    prod_api_key: Optional[str] = None
    local_api_key: Optional[str] = None
    user_id: Optional[int] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    webhook_secret: Optional[str] = None

    # Production hosts
    fl_api_url: Optional[str] = Field(default=None, validation_alias="FL_API_URL")
    api_url: Optional[str] = None
    url: Optional[str] = None

    # Local hosts
    fl_api_local_url: Optional[str] = Field(default=None, validation_alias="FL_API_LOCAL_URL")
    local_url: Optional[str] = None

    # Transport
    timeout: float = 30.0
    retries: int = 3
    debug: bool = False

    @property
    def is_local(self) -> bool:
        return self.env.strip().lower() == "local"

    def resolved_api_key(self) -> Optional[str]:
        if self.is_local:
            return self.local_api_key or self.api_key
        return self.prod_api_key or self.api_key

    def to_client_config(self, **overrides: Any) -> ClientConfig:
        """Build a ClientConfig; explicit non-None overrides win over the environment."""
        if self.is_local:
            values: Dict[str, Any] = {
                "api_url": self.fl_api_local_url or LOCAL_API_URL,
                "iris_url": self.local_url or LOCAL_IRIS_URL,
                "base_url": self.local_url or LOCAL_IRIS_URL,
            }
        else:
            values = {
                "api_url": self.fl_api_url or self.api_url or DEFAULT_API_URL,
                "iris_url": self.url or DEFAULT_IRIS_URL,
                "base_url": self.api_url or DEFAULT_API_URL,
            }

        values.update(
            api_key=self.resolved_api_key(),
            user_id=self.user_id,
            client_id=self.client_id,
            client_secret=self.client_secret,
            webhook_secret=self.webhook_secret,
            timeout=self.timeout,
            retries=self.retries,
            debug=self.debug,
            log_level=self.log_level,
        )
        values.update({key: value for key, value in overrides.items() if value is not None})
        return ClientConfig(**values)

    def has_minimum_credentials(self) -> bool:
        return bool(self.resolved_api_key()) and self.user_id is not None


def load_config(**overrides: Any) -> ClientConfig:
    """Load client configuration from the environment with explicit overrides."""
    return IrisSettings().to_client_config(**overrides)


def has_stored_credentials() -> bool:
    """Whether the environment provides both an API key and a user id."""
    return IrisSettings().has_minimum_credentials()
