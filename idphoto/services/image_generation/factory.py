"""
Factory for creating image generation providers based on configuration.
"""
import logging

from idphoto.services.image_generation.base import ImageGenerationProvider
from idphoto.services.image_generation.providers.gemini import GeminiImageProvider

logger = logging.getLogger(__name__)


class ImageProviderFactory:
    """Factory for creating image generation providers."""

    PROVIDERS: dict[str, type[ImageGenerationProvider]] = {
        "gemini": GeminiImageProvider,
    }

    @classmethod
    def create(cls, provider_name: str, config: dict) -> ImageGenerationProvider:
        """
        Create provider instance by name.

        Raises:
            ValueError: If provider name is unknown
        """
        provider_class = cls.PROVIDERS.get(provider_name.strip().lower())

        if not provider_class:
            available = ", ".join(cls.PROVIDERS.keys())
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available providers: {available}"
            )

        logger.info("Creating image provider: %s", provider_name)
        provider = provider_class(config)

        if not provider.is_available():
            logger.warning("Provider %s created but not fully configured", provider_name)

        return provider

    @classmethod
    def create_from_settings(cls, settings, provider_override: str | None = None) -> ImageGenerationProvider:
        """Create provider from application settings."""
        provider_name = (provider_override or "").strip() or settings.image_provider

        if provider_name == "gemini":
            config = {
                "api_key": getattr(settings, "gemini_api_key", ""),
                "api_endpoint": getattr(settings, "gemini_api_endpoint", "https://generativelanguage.googleapis.com"),
                "timeout": getattr(settings, "gemini_timeout", 120.0),
                "model": getattr(settings, "gemini_image_model", "gemini-2.5-flash-image"),
            }
        else:
            raise ValueError(f"Provider {provider_name} not supported in settings")

        return cls.create(provider_name, config)
