"""Application settings.

Built once at startup with Settings.from_env() and passed explicitly to
the components that need it. Nothing in the package reads os.environ
after this point.

Every field is read from the environment variable named in its
validation_alias; blank values fall back to the default.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

BACKEND_AWS = "aws"
BACKEND_GCP = "gcp"
KNOWN_BACKENDS = (BACKEND_AWS, BACKEND_GCP)


class Settings(BaseSettings):
    """Runtime configuration for the API, stores and model backends."""

    model_config = SettingsConfigDict(
        env_file=None,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    admin_password: str = Field(
        default="admin",
        validation_alias="ADMIN_PASSWORD",
        description="Shared admin password",
    )
    default_backend: str = Field(
        default=BACKEND_AWS,
        validation_alias="PAPERMAP_BACKEND",
        description="Backend pair used when a request carries no selector",
    )

    # AWS: DynamoDB + Bedrock
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    dynamodb_table: str = Field(default="mindmaps", validation_alias="MINDMAPS_TABLE")
    bedrock_model_id: str = Field(
        default="anthropic.claude-3-5-haiku-20241022-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )

    # GCP: Firestore + Gemini
    gcp_project_id: Optional[str] = Field(default=None, validation_alias="GCP_PROJECT_ID")
    gcp_location: str = Field(default="us-central1", validation_alias="GCP_LOCATION")
    firestore_collection: str = Field(default="mindmaps", validation_alias="FIRESTORE_COLLECTION")
    gemini_model_id: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL_ID")
    gemini_api_key: Optional[str] = Field(default=None, validation_alias="GEMINI_API_KEY")

    # Model call parameters
    max_output_tokens: int = Field(default=4000, validation_alias="MODEL_MAX_TOKENS")
    temperature: float = Field(default=0.0, validation_alias="MODEL_TEMPERATURE")

    # Request handling
    request_timeout_seconds: float = Field(
        default=300.0, validation_alias="REQUEST_TIMEOUT_SECONDS"
    )
    max_subtree_depth: Optional[int] = Field(
        default=None,
        validation_alias="MAX_SUBTREE_DEPTH",
        description="Reject subtree regeneration at or below this depth. None disables.",
    )
    port: int = Field(default=3000, validation_alias="PORT")

    @field_validator("default_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in KNOWN_BACKENDS:
            raise ValueError(
                f"default_backend must be one of {KNOWN_BACKENDS}, got '{value}'"
            )
        return value

    @classmethod
    def from_env(cls, env_file: Optional[Union[str, Path]] = None) -> "Settings":
        """Build settings from the environment.

        Args:
            env_file: .env file to read as well (defaults to ./.env when
                one exists)
        """
        if env_file is None:
            default_env = Path.cwd() / ".env"
            env_file = default_env if default_env.exists() else None

        settings = cls(_env_file=env_file)
        logger.info(
            f"Settings loaded: default_backend={settings.default_backend}, "
            f"table={settings.dynamodb_table}, collection={settings.firestore_collection}"
        )
        return settings
