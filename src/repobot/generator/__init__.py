"""Content generator gateway and prompts."""

from src.repobot.generator.client import ContentGenerator, GenerationError
from src.repobot.generator.prompts import (
    build_generation_prompt,
    build_modification_prompt,
    render_fallback_post,
)

__all__ = [
    "build_generation_prompt",
    "build_modification_prompt",
    "ContentGenerator",
    "GenerationError",
    "render_fallback_post",
]
