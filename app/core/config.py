from typing import Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GenerationSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    fast_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_FAST_MODEL")
    smart_model: str = Field(default="gemini-2.5-pro", alias="GEMINI_SMART_MODEL")
    timeout_seconds: float = Field(default=30.0, alias="GENERATION_TIMEOUT_SECONDS")
    max_retries: int = Field(default=3, alias="GENERATION_MAX_RETRIES")
    backoff_base_seconds: float = Field(default=1.0, alias="GENERATION_BACKOFF_BASE")
    jitter_seconds: float = Field(default=1.0, alias="GENERATION_BACKOFF_JITTER")


class StorageSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    database_url: str = Field(
        default="sqlite:///./learning_env.db", alias="STATE_DATABASE_URL"
    )
    state_key: str = Field(default="learning-environment-state", alias="STATE_KEY")
    max_live_sessions: int = Field(default=256, alias="STATE_MAX_LIVE_SESSIONS")


class UploadSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    max_bytes: int = Field(default=10 * 1024 * 1024, alias="UPLOAD_MAX_BYTES")


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )
    name: str = Field(default="learning-env-builder", alias="APP_NAME")
    version: str = Field(default="v1", alias="API_VERSION")
    port: int = Field(default=9000, alias="APP_PORT")
    mode: str = Field(default="prod", alias="MODE")

    @computed_field
    def is_production(self) -> bool:
        return self.mode != "dev"

    @computed_field
    def is_testing(self) -> bool:
        return self.mode == "test"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    app: AppSettings = Field(default_factory=lambda: AppSettings())
    generation: GenerationSettings = Field(
        default_factory=lambda: GenerationSettings()
    )
    storage: StorageSettings = Field(default_factory=lambda: StorageSettings())
    uploads: UploadSettings = Field(default_factory=lambda: UploadSettings())

    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")


settings = Settings()
