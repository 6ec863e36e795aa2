"""Core functionality for the Santa Hat Avatar Generator.

This module provides the components of the generation pipeline:

- **SantaHatConfig / config**: Configuration management using Pydantic Settings
- **CredentialResolver / CredentialStore**: Which API key a request uses
- **AvatarCompositor**: Padded, blurred-backdrop squares for circular avatars
- **GenerationClient**: Gemini request construction and response parsing
- **GenerationSession**: Idle/Processing/Success/Error state machine

Architecture Overview
---------------------
1. **Configuration Layer** (config.py):
   - Environment-based configuration using Pydantic Settings
   - All settings prefixed with SANTAHAT_ in .env files

2. **Pipeline Layer** (credentials.py, compositor.py, generation.py):
   - Credential resolution, with an ordered environment fallback table
   - Pillow-based avatar compositing with fallback to the original image
   - Remote model call through the google-genai SDK

3. **Orchestration Layer** (session.py):
   - Explicit state machine driven by events

4. **Support Utilities**:
   - models.py: ImageAsset and request/result types
   - errors.py: Error taxonomy
   - validation.py: Upload checks and download naming

Usage Example
-------------
    from santahat.core import (
        AvatarCompositor, CredentialResolver, CredentialStore,
        GenerationClient, GenerationSession, config,
    )

    session = GenerationSession(
        resolver=CredentialResolver(CredentialStore(config.credential_file)),
        client=GenerationClient(config.model_id),
        compositor=AvatarCompositor.from_config(config),
    )
    session.dispatch(ImageSelected(asset))
    state = await session.generate()
"""

from santahat.core.compositor import AvatarCompositor, prepare_for_avatar
from santahat.core.config import SantaHatConfig, config
from santahat.core.credentials import CredentialResolver, CredentialStore, resolve_api_key
from santahat.core.errors import (
    CompositionError,
    ErrorKind,
    GenerationFailed,
    InvalidCredential,
    MissingCredential,
    NoImageReturned,
    SantaHatError,
    ValidationError,
)
from santahat.core.generation import GenerationClient
from santahat.core.models import (
    HAT_INSTRUCTION,
    GenerationFailure,
    GenerationRequest,
    GenerationResult,
    ImageAsset,
)
from santahat.core.session import AppStatus, GenerationSession, ImageSelected

__all__ = [
    "AppStatus",
    "AvatarCompositor",
    "CompositionError",
    "CredentialResolver",
    "CredentialStore",
    "ErrorKind",
    "GenerationClient",
    "GenerationFailed",
    "GenerationFailure",
    "GenerationRequest",
    "GenerationResult",
    "GenerationSession",
    "HAT_INSTRUCTION",
    "ImageAsset",
    "ImageSelected",
    "InvalidCredential",
    "MissingCredential",
    "NoImageReturned",
    "SantaHatConfig",
    "SantaHatError",
    "ValidationError",
    "config",
    "prepare_for_avatar",
    "resolve_api_key",
]
