"""Configuration management for the UI automation flows.

Uses Pydantic Settings for environment-based configuration. Variable names
carry no prefix (``BASE_URL``, ``THEATRE_OWNER_EMAIL``, ``HEADLESS``).
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AutomationSettings(BaseSettings):
    """Target frontend, test account and wait budgets."""

    base_url: str = Field(default="http://localhost:5173", description="Frontend URL")
    theatre_owner_email: str = Field(
        default="anchani@booknview.com", description="Theatre owner test account"
    )
    theatre_owner_password: str = Field(
        default="3*F#cbKPPMv2", description="Theatre owner test account password"
    )
    headless: bool = Field(default=False, description="Run Chrome without a window")

    # Wait budgets (seconds)
    locator_timeout: float = Field(default=10.0, description="Per-locator wait", gt=0)
    navigation_timeout: float = Field(default=15.0, description="URL change wait", gt=0)
    reachability_timeout: float = Field(default=3.0, description="Server check timeout", gt=0)

    service_name: str = Field(default="booknview-e2e", description="Service name")
    log_level: str = Field(default="WARNING", description="Log level")

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def root_url(self) -> str:
        return self.base_url.rstrip("/")

    def url(self, path: str) -> str:
        return f"{self.root_url}/{path.lstrip('/')}"


# Global config instance
_settings_instance: Optional[AutomationSettings] = None


def get_settings() -> AutomationSettings:
    """Get or create the settings instance.

    Returns:
        AutomationSettings instance
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = AutomationSettings()
    return _settings_instance
