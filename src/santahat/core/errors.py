"""Error taxonomy for the avatar pipeline.

Every failure a generation attempt can end in is one of the exceptions
below.  Each carries an :class:`ErrorKind` so the API layer and the
session state machine can react to the category without string matching,
and a ``retryable`` flag that tells the caller whether offering a manual
retry makes sense.

========================  ==========================================  =========
Exception                 Raised when                                 Retryable
========================  ==========================================  =========
``ValidationError``       Upload has the wrong type or is too large   no
``MissingCredential``     No API key resolved                         no
``CompositionError``      Avatar padding could not be rendered        no
``InvalidCredential``     Remote API rejected the key                 no
``NoImageReturned``       Response carried no image part              yes
``GenerationFailed``      Any other transport/API failure             yes
========================  ==========================================  =========

``CompositionError`` never ends an attempt: callers fall back to the
unmodified image (see :func:`santahat.core.compositor.prepare_for_avatar`).
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a pipeline failure."""

    VALIDATION = "validation"
    MISSING_CREDENTIAL = "missing_credential"
    COMPOSITION = "composition"
    INVALID_CREDENTIAL = "invalid_credential"
    NO_IMAGE_RETURNED = "no_image_returned"
    GENERATION_FAILED = "generation_failed"


class SantaHatError(Exception):
    """Base class for all pipeline errors.

    The message is intended to be displayed directly to the user.
    """

    kind: ErrorKind = ErrorKind.GENERATION_FAILED
    retryable: bool = False
    default_message: str = "An error occurred while generating the image."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SantaHatError):
    """User-supplied file failed validation (type, size, decode)."""

    kind = ErrorKind.VALIDATION
    default_message = "Please upload an image file (JPG, PNG, WEBP)."


class MissingCredential(SantaHatError):
    """No API key could be resolved for the request."""

    kind = ErrorKind.MISSING_CREDENTIAL
    default_message = (
        "No API key found. Configure your Google Gemini API key in the settings "
        "or set the API_KEY environment variable."
    )


class CompositionError(SantaHatError):
    """The avatar compositor could not decode or render the image."""

    kind = ErrorKind.COMPOSITION
    default_message = "Failed to load image for processing."


class InvalidCredential(SantaHatError):
    """The remote API rejected the API key."""

    kind = ErrorKind.INVALID_CREDENTIAL
    default_message = "The API key is invalid or expired. Please check your settings."


class NoImageReturned(SantaHatError):
    """The model answered without an image part."""

    kind = ErrorKind.NO_IMAGE_RETURNED
    retryable = True
    default_message = "The model did not return image data. Please try again."


class GenerationFailed(SantaHatError):
    """Any other failure talking to the remote model."""

    kind = ErrorKind.GENERATION_FAILED
    retryable = True
