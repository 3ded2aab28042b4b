"""
Passport-style ID photo generation on top of the image generation pipeline.
"""
from .history import GenerationHistory
from .prompt import build_id_photo_prompt
from .service import IdPhotoService

__all__ = [
    "GenerationHistory",
    "build_id_photo_prompt",
    "IdPhotoService",
]
