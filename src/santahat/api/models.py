"""Pydantic request and response models for the Santa Hat API.

These models define the JSON schema for the API endpoints.  FastAPI uses
them for automatic request validation, serialisation, and OpenAPI
documentation generation.  Image uploads themselves arrive as multipart
form data and are not modelled here.

Models
------
CredentialUpdate
    Payload for ``PUT /api/credential``.
CredentialStatus
    Response of the credential endpoints.  Never contains the key itself.
GenerateResponse
    Response of ``POST /api/generate``.
PreviewResponse
    Response of ``POST /api/preview``.
ErrorDetail
    ``detail`` payload of every error response raised by the pipeline.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class CredentialUpdate(BaseModel):
    """Request body for ``PUT /api/credential``.

    Attributes:
        api_key: The Gemini API key to store.  An empty string clears the
            stored key.
    """

    api_key: str = Field(
        default="",
        description="Gemini API key to store; empty clears the stored key.",
    )


class CredentialStatus(BaseModel):
    """Whether a key is available and where it would come from.

    Attributes:
        has_credential: ``True`` if a generation could resolve a key.
        source: ``"stored"``, ``"environment"`` or ``"none"``.
    """

    has_credential: bool
    source: Literal["stored", "environment", "none"]


class GenerateResponse(BaseModel):
    """Response body for ``POST /api/generate``.

    Attributes:
        success: Always ``True``; failures are returned as HTTP errors.
        image: Result as a ``data:image/png;base64,...`` URL.
        mime_type: Mime type of the result.
        filename: Suggested download file name.
        optimized: Whether the avatar compositor output was sent.
        sent_width: Width of the image sent to the model.
        sent_height: Height of the image sent to the model.
    """

    success: bool = True
    image: str = Field(..., description="Generated image as a data URL.")
    mime_type: str = "image/png"
    filename: str = Field(..., description="Suggested download file name.")
    optimized: bool
    sent_width: int
    sent_height: int


class PreviewResponse(BaseModel):
    """Response body for ``POST /api/preview``.

    Attributes:
        image: Composited image as a data URL.
        width: Side of the composited square (or original width on fallback).
        height: Height of the returned image.
        optimized: ``False`` if compositing failed and the original is returned.
    """

    image: str
    mime_type: str
    width: int
    height: int
    optimized: bool


class ErrorDetail(BaseModel):
    """Error payload returned in ``HTTPException.detail``.

    Attributes:
        kind: Error category (see ``santahat.core.errors.ErrorKind``).
        message: User-facing message.
        retryable: Whether a manual retry may succeed.
    """

    kind: str
    message: str
    retryable: bool = False
