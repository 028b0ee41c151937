from pathlib import Path

from pydantic import AliasChoices, Field, computed_field, field_validator
from pydantic_settings import BaseSettings


def normalize_contact(value: str) -> str:
    """Prefix a bare e-mail address with ``mailto:``."""
    value = value.strip()
    if value.startswith("mailto:"):
        return value
    return f"mailto:{value}"


class Settings(BaseSettings):
    """Application settings loaded from environment.

    Secrets, VAPID keys and the client origin have no defaults;
    a missing one fails validation at startup.
    """

    # API
    app_name: str = "Emergency Call System"
    app_version: str = "2.0"
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"

    # Security
    login_password: str = Field(min_length=1)
    jwt_secret: str = Field(min_length=1)
    refresh_token_secret: str = Field(min_length=1)

    # Token / code lifetimes
    auth_code_ttl_minutes: int = 30
    access_token_ttl_minutes: int = 15
    caller_token_ttl_minutes: int = 60
    refresh_token_ttl_days: int = 30

    # Push notifications
    vapid_public_key: str = Field(min_length=1)
    vapid_private_key: str = Field(min_length=1)
    vapid_contact_email: str = Field(min_length=1)
    client_url: str = Field(min_length=1)
    default_title: str = "🚨 Emergency Call"
    default_body: str = "You have a new emergency call."

    # Paths
    state_dir: str = Field(
        default=str(Path.home() / ".callrelay"),
        validation_alias=AliasChoices("state_dir", "CALLRELAY_STATE"),
        description="Directory for the persisted data document",
    )

    @field_validator("vapid_contact_email")
    @classmethod
    def _mailto(cls, value: str) -> str:
        return normalize_contact(value)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def data_path(self) -> Path:
        """JSON document holding auth codes and registrations."""
        return Path(self.state_dir) / "data.json"

    @property
    def vapid_claims(self) -> dict:
        return {"sub": self.vapid_contact_email}

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
        "frozen": True,
    }


_override: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings instance."""
    if _override:
        return _override
    return Settings()  # type: ignore[call-arg]


def override_settings(s: Settings | None) -> None:
    """Swap in a custom Settings (use None to reset)."""
    global _override  # noqa: PLW0603
    _override = s
