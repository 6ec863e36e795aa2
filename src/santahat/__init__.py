"""Santa Hat Avatar Generator - festive hats for profile pictures via Gemini."""

__version__ = "0.1.0"

from santahat.core.compositor import AvatarCompositor
from santahat.core.config import SantaHatConfig, config
from santahat.core.generation import GenerationClient

__all__ = [
    "AvatarCompositor",
    "GenerationClient",
    "SantaHatConfig",
    "config",
]
