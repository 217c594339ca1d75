"""Bot configuration using pydantic-settings.

This module defines the BotSettings class that reads configuration from
environment variables with the REPOBOT_ prefix. Missing or empty required
values raise a validation error, which makes startup fail.

Recognized inputs:
- GitHub token, owner, and one or two target repository names
- Webhook shared secret (optionally a separate one for the code repository)
- Generation backend API key, URL, model and output ceiling
- Listen host and port
"""

from typing import Optional

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BotSettings(BaseSettings):
    """Bot configuration from environment variables.

    All environment variables are prefixed with REPOBOT_ (e.g., REPOBOT_GITHUB_TOKEN).

    Required fields (must be set via environment variables):
    - github_token: GitHub API token for branches, files, PRs, comments
    - github_owner: Owner of both target repositories
    - blog_repo: Name of the content (blog) repository
    - github_webhook_secret: Secret for validating GitHub webhook signatures
    - llm_api_key: API key for the generation backend
    """

    model_config = SettingsConfigDict(
        env_prefix="REPOBOT_",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # GitHub Configuration
    # -------------------------------------------------------------------------
    github_token: str

    github_owner: str

    # Content repository, handled by the blog workflow
    blog_repo: str

    # Automation-target repository, handled by the code workflow (optional)
    code_repo: Optional[str] = None

    github_webhook_secret: str

    # Falls back to github_webhook_secret when unset
    code_webhook_secret: Optional[str] = None

    # Base URL for GitHub API (supports GitHub Enterprise)
    github_base_url: str = "https://api.github.com"

    # Branch that new work branches are cut from and PRs target
    base_branch: str = "main"

    # -------------------------------------------------------------------------
    # Generation Backend Configuration
    # -------------------------------------------------------------------------
    llm_api_key: str

    # OpenAI-compatible endpoint
    llm_url: str = "https://api.openai.com/v1"

    llm_model: str = "gpt-4o-mini"

    # Upper bound on generated output size
    llm_max_tokens: int = 5000

    llm_timeout_seconds: float = 120.0

    # -------------------------------------------------------------------------
    # Server Configuration
    # -------------------------------------------------------------------------
    host: str = "0.0.0.0"

    port: int = 8080

    log_level: str = "INFO"

    json_logs: bool = True

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------
    @field_validator(
        "github_token",
        "github_owner",
        "blog_repo",
        "github_webhook_secret",
        "llm_api_key",
    )
    @classmethod
    def validate_not_empty(cls, v: str, info: ValidationInfo) -> str:
        """Validate that a required value is not empty."""
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} cannot be empty")
        return v.strip()

    @field_validator("code_repo", "code_webhook_secret")
    @classmethod
    def normalize_optional(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank optional values as unset."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("llm_url")
    @classmethod
    def validate_llm_url(cls, v: str) -> str:
        """Validate that LLM URL is a valid URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("llm_url must start with http:// or https://")
        return v

    @field_validator("llm_max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        """Validate that the output ceiling is positive."""
        if v < 1:
            raise ValueError("llm_max_tokens must be at least 1")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate that port is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError("port must be between 1 and 65535")
        return v

    @property
    def effective_code_webhook_secret(self) -> str:
        """Secret used to verify deliveries for the code repository."""
        return self.code_webhook_secret or self.github_webhook_secret


def get_settings() -> BotSettings:
    """Create and return a BotSettings instance.

    Returns:
        BotSettings: Configured settings instance.

    Raises:
        pydantic.ValidationError: If required fields are missing or invalid.
    """
    return BotSettings()
