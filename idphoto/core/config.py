"""
Application configuration.
All settings are loaded from environment variables (or a .env file).
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    The Gemini API key has no usable default: without it every generation is
    rejected pre-flight as an auth error.
    """

    # ===========================================
    # APPLICATION
    # ===========================================
    # CORS: comma-separated origins. Empty = default list in main.py.
    cors_origins: str = ""

    # ===========================================
    # IMAGE GENERATION - PROVIDER SELECTION
    # ===========================================
    image_provider: str = "gemini"

    # ===========================================
    # GOOGLE GEMINI (Provider: gemini)
    # ===========================================
    gemini_api_key: str = ""  # https://aistudio.google.com/apikey
    gemini_api_endpoint: str = "https://generativelanguage.googleapis.com"
    gemini_image_model: str = "gemini-2.5-flash-image"
    gemini_timeout: float = 120.0

    # ===========================================
    # IMAGE PREPROCESSING
    # ===========================================
    # Longer edge of the uploaded photo is scaled down to this many pixels
    image_max_dimension: int = 1024
    image_jpeg_quality: int = 90

    # ===========================================
    # IMAGE GENERATION - RETRY POLICY
    # ===========================================
    # delay(i) = base_ms * 2^i + uniform(0, jitter_ms)
    image_generation_retry_max_attempts: int = 3
    image_generation_retry_base_ms: int = 2000
    image_generation_retry_jitter_ms: int = 1000
    # Network failures/timeouts are terminal unless enabled
    image_generation_retry_transport_errors: bool = False

    # ===========================================
    # COOLDOWN (after rate limit)
    # ===========================================
    cooldown_seconds: int = 60

    # ===========================================
    # ID PHOTO
    # ===========================================
    default_clothing: str = "black formal suit and tie"
    history_max_items: int = 20

    # ===========================================
    # LOGGING
    # ===========================================
    log_level: str = "INFO"
    log_file: str | None = None
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    @field_validator("image_max_dimension", "image_generation_retry_max_attempts")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be a positive integer")
        return v

    @field_validator(
        "image_generation_retry_base_ms",
        "image_generation_retry_jitter_ms",
        "cooldown_seconds",
        "history_max_items",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_validator("image_jpeg_quality")
    @classmethod
    def validate_jpeg_quality(cls, v: int) -> int:
        """Pillow accepts 1..95 for JPEG quality."""
        if not 1 <= v <= 95:
            raise ValueError("image_jpeg_quality must be between 1 and 95")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
