"""Remote generation client for the Santa Hat Avatar Generator.

This module provides :class:`GenerationClient`, the single point of contact
with the Gemini image model.  One call to :meth:`GenerationClient.generate`
is one generation attempt:

1. **Precondition** - an empty API key fails with
   :class:`~santahat.core.errors.MissingCredential` before any client is
   created, so no network traffic happens.
2. **Request** - exactly two parts are sent: the inline image (mime type and
   raw bytes) followed by the fixed :data:`~santahat.core.models.HAT_INSTRUCTION`.
3. **Call** - ``client.aio.models.generate_content`` on a ``google-genai``
   client created for this attempt, since the key can change between
   attempts.
4. **Response** - the first part of the first candidate that carries inline
   image data becomes the :class:`~santahat.core.models.GenerationResult`.
   Anything else is :class:`~santahat.core.errors.NoImageReturned`.
5. **Errors** - HTTP 400/403 or messages mentioning the API key become
   :class:`~santahat.core.errors.InvalidCredential`; everything else becomes
   :class:`~santahat.core.errors.GenerationFailed`.

There is no automatic retry.  Each failure is surfaced so the user can
decide to try again.

Usage
-----
::

    from santahat.core.generation import GenerationClient

    client = GenerationClient()
    result = await client.generate(asset, api_key)
    open("out.png", "wb").write(result.image_bytes)
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Callable
from typing import Any

from google import genai
from google.genai import types

from .config import DEFAULT_MODEL_ID
from .errors import (
    GenerationFailed,
    InvalidCredential,
    MissingCredential,
    NoImageReturned,
    SantaHatError,
)
from .models import RESULT_MIME_TYPE, GenerationRequest, GenerationResult, ImageAsset

logger = logging.getLogger(__name__)

# HTTP statuses the Gemini API answers with for a bad or unauthorised key.
CREDENTIAL_ERROR_STATUSES = frozenset({400, 403})


def default_client_factory(api_key: str) -> genai.Client:
    return genai.Client(api_key=api_key)


def build_contents(request: GenerationRequest) -> types.Content:
    """Build the two-part multimodal content for ``request``.

    Returns:
        Content with the inline image part first and the instruction second
    """
    return types.Content(
        role="user",
        parts=[
            types.Part(
                inline_data=types.Blob(
                    mime_type=request.image.mime_type,
                    data=request.image.raw_bytes,
                )
            ),
            types.Part(text=request.instruction),
        ],
    )


def extract_image(response: Any) -> GenerationResult:
    """Pull the first inline image out of a ``generate_content`` response.

    Only the first candidate is considered, and its parts are scanned in
    order.

    Raises:
        NoImageReturned: If there is no candidate or no image-bearing part
    """
    candidates = getattr(response, "candidates", None)
    if not candidates:
        raise NoImageReturned()

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []

    for part in parts:
        inline_data = getattr(part, "inline_data", None)
        data = getattr(inline_data, "data", None) if inline_data is not None else None
        if not data:
            continue
        if isinstance(data, str):
            data = base64.b64decode(data)
        return GenerationResult(image_bytes=data, mime_type=RESULT_MIME_TYPE)

    raise NoImageReturned()


def _status_code(error: BaseException) -> int | None:
    for attr in ("code", "status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def classify_error(error: BaseException) -> SantaHatError:
    """Map a transport/API exception onto the pipeline's error taxonomy.

    Errors that are already classified are returned unchanged.
    """
    if isinstance(error, SantaHatError):
        return error

    message = getattr(error, "message", None) or str(error)
    if _status_code(error) in CREDENTIAL_ERROR_STATUSES or "api key" in message.lower():
        return InvalidCredential()
    return GenerationFailed(message or None)


class GenerationClient:
    """Sends images to the Gemini model and parses the edited result.

    Attributes:
        model_id (str):
            Gemini model identifier.
        client_factory (Callable[[str], Any]):
            Builds an SDK client for an API key.  Tests substitute a fake.
    """

    def __init__(
        self,
        model_id: str = DEFAULT_MODEL_ID,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self.model_id = model_id
        self.client_factory = client_factory or default_client_factory

    async def generate(self, image: ImageAsset, api_key: str) -> GenerationResult:
        """Run one generation attempt.

        Args:
            image: Image to edit (original or composited)
            api_key: Resolved Gemini API key

        Returns:
            The edited image

        Raises:
            MissingCredential: If ``api_key`` is empty; no call is made
            InvalidCredential: If the API rejects the key
            NoImageReturned: If the response has no image
            GenerationFailed: For any other failure
        """
        if not api_key or not api_key.strip():
            raise MissingCredential()

        request = GenerationRequest(image=image, api_key=api_key.strip())
        logger.info(
            f"Requesting hat edit from {self.model_id} "
            f"({image.width}x{image.height} {image.mime_type}, {len(image.raw_bytes)} bytes)"
        )

        try:
            client = self.client_factory(request.api_key)
            response = await client.aio.models.generate_content(
                model=self.model_id,
                contents=build_contents(request),
            )
            result = extract_image(response)
        except NoImageReturned:
            logger.warning("Model response contained no image data")
            raise
        except Exception as e:
            classified = classify_error(e)
            logger.error(f"Gemini API error ({classified.kind.value}): {e}")
            raise classified from e

        logger.info(f"Received {len(result.image_bytes)} bytes of image data")
        return result
