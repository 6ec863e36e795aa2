"""Santa Hat Avatar Generator — FastAPI Application.

This module is the single entry point for the web application.  It defines
the FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
The application follows a stateless REST pattern:

- **Configuration** comes from :data:`~santahat.core.config.config`.
- **The API key** is kept by a :class:`~santahat.core.credentials.CredentialStore`
  (one JSON file, one value) with an environment-variable fallback.
- **Each generation request** runs its own
  :class:`~santahat.core.session.GenerationSession`: upload validation,
  optional avatar compositing, and the Gemini call.  Nothing but the
  credential is persisted.

Endpoints
---------
========  ============================  ====================================
Method    Path                          Purpose
========  ============================  ====================================
GET       ``/api/config``               Version, model and upload limits
GET       ``/api/credential``           Whether an API key is available
PUT       ``/api/credential``           Store (or clear) the API key
DELETE    ``/api/credential``           Clear the stored API key
POST      ``/api/preview``              Composite an upload, no model call
POST      ``/api/generate``             Add the hat to an uploaded image
========  ============================  ====================================

Usage
-----
CLI (installed entry point)::

    santahat

Direct invocation::

    python -m santahat.api.main
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from santahat import __version__
from santahat.api.models import (
    CredentialStatus,
    CredentialUpdate,
    ErrorDetail,
    GenerateResponse,
    PreviewResponse,
)
from santahat.core.compositor import AvatarCompositor, prepare_for_avatar
from santahat.core.config import config
from santahat.core.credentials import CredentialResolver, CredentialStore
from santahat.core.errors import ErrorKind, SantaHatError, ValidationError
from santahat.core.generation import GenerationClient
from santahat.core.models import GenerationFailure, ImageAsset
from santahat.core.session import (
    Error,
    GenerationSession,
    ImageSelected,
    Success,
    ToggleOptimize,
)
from santahat.core.validation import download_filename, validate_upload

logger = logging.getLogger(__name__)

# HTTP status for each failure category.
ERROR_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.MISSING_CREDENTIAL: 401,
    ErrorKind.INVALID_CREDENTIAL: 401,
    ErrorKind.COMPOSITION: 500,
    ErrorKind.NO_IMAGE_RETURNED: 502,
    ErrorKind.GENERATION_FAILED: 502,
}


# ---------------------------------------------------------------------------
# Application lifecycle — pipeline collaborators.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the pipeline collaborators and store them on ``app.state``.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    store = CredentialStore(config.credential_file)
    app.state.credential_store = store
    app.state.resolver = CredentialResolver(store, candidates=config.api_key_env_vars)
    app.state.compositor = AvatarCompositor.from_config(config)
    app.state.generation_client = GenerationClient(model_id=config.model_id)
    logger.info(f"Pipeline ready (model={config.model_id}).")

    yield


app = FastAPI(
    title="Santa Hat Avatar Generator",
    description="Adds a festive hat to portrait photos with Gemini image editing.",
    version=__version__,
    lifespan=lifespan,
)

# Allow cross-origin requests so a frontend can be served from a different
# port during development.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Helpers.
# ---------------------------------------------------------------------------


def _http_error(failure: GenerationFailure) -> HTTPException:
    """Translate a pipeline failure into an HTTP error response."""
    detail = ErrorDetail(
        kind=failure.kind.value,
        message=failure.message,
        retryable=failure.retryable,
    )
    return HTTPException(
        status_code=ERROR_STATUS.get(failure.kind, 500),
        detail=detail.model_dump(),
    )


async def _read_upload(file: UploadFile) -> ImageAsset:
    """Read and validate an uploaded image.

    At most one byte past the limit is read so oversize uploads are
    rejected without buffering them whole.

    Raises:
        HTTPException: 400 if the upload is not an acceptable image.
    """
    data = await file.read(config.max_upload_bytes + 1)
    try:
        return validate_upload(data, file.content_type, config.max_upload_bytes)
    except ValidationError as e:
        logger.warning(f"Validation error for upload {file.filename!r}: {e}")
        raise _http_error(GenerationFailure.from_error(e)) from e


def _credential_status(request: Request) -> CredentialStatus:
    source = request.app.state.resolver.source()
    return CredentialStatus(has_credential=source != "none", source=source)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/api/config")
async def get_config(request: Request) -> dict:
    """Return application settings the frontend needs.

    Returns:
        Dictionary with keys ``version``, ``model_id``, ``padding_factor``,
        ``max_upload_bytes`` and ``has_credential``.
    """
    return {
        "version": __version__,
        "model_id": config.model_id,
        "padding_factor": config.padding_factor,
        "max_upload_bytes": config.max_upload_bytes,
        "has_credential": _credential_status(request).has_credential,
    }


@app.get("/api/credential", response_model=CredentialStatus)
async def get_credential(request: Request) -> CredentialStatus:
    """Report whether an API key is available, without revealing it."""
    return _credential_status(request)


@app.put("/api/credential", response_model=CredentialStatus)
async def set_credential(req: CredentialUpdate, request: Request) -> CredentialStatus:
    """Store the API key.  The last write wins; an empty key clears it."""
    store: CredentialStore = request.app.state.credential_store
    store.set(req.api_key)
    return _credential_status(request)


@app.delete("/api/credential", response_model=CredentialStatus)
async def delete_credential(request: Request) -> CredentialStatus:
    """Clear the stored API key.  Environment fallbacks still apply."""
    store: CredentialStore = request.app.state.credential_store
    store.clear()
    return _credential_status(request)


@app.post("/api/preview", response_model=PreviewResponse)
async def preview_avatar(request: Request, file: UploadFile = File(...)) -> PreviewResponse:
    """Show what would be sent to the model with avatar optimisation on.

    Compositing failures fall back to the original image, reported as
    ``optimized=False``.

    Raises:
        HTTPException: 400 if the upload is not an acceptable image.
    """
    image = await _read_upload(file)
    compositor: AvatarCompositor = request.app.state.compositor
    prepared = await asyncio.to_thread(prepare_for_avatar, image, compositor)
    return PreviewResponse(
        image=prepared.to_data_url(),
        mime_type=prepared.mime_type,
        width=prepared.width,
        height=prepared.height,
        optimized=prepared is not image,
    )


@app.post("/api/generate", response_model=GenerateResponse)
async def generate_avatar(
    request: Request,
    file: UploadFile = File(...),
    optimize_for_avatar: bool = Form(True),
    api_key: str | None = Form(None),
) -> GenerateResponse:
    """Add a festive hat to the uploaded image.

    This endpoint:

    1. Validates the upload (image type, at most ``max_upload_bytes``).
    2. Resolves the API key: ``api_key`` form field, then the stored key,
       then the environment fallbacks.
    3. Optionally pads the image for circular avatars (falling back to the
       original on failure).
    4. Calls the Gemini model and returns the first image it produced.

    Args:
        file: Uploaded image.
        optimize_for_avatar: Run the avatar compositor first.
        api_key: Key for this request only (not stored).

    Returns:
        :class:`GenerateResponse` with the result as a data URL.

    Raises:
        HTTPException: 400 for invalid uploads, 401 for missing or rejected
            API keys, 502 when the model fails or returns no image.
    """
    image = await _read_upload(file)

    session = GenerationSession(
        resolver=request.app.state.resolver,
        client=request.app.state.generation_client,
        compositor=request.app.state.compositor,
    )
    session.dispatch(ImageSelected(image))
    session.dispatch(ToggleOptimize(optimize_for_avatar))

    state = await session.generate(api_key)

    if isinstance(state, Error):
        raise _http_error(state.failure)
    if not isinstance(state, Success):
        raise _http_error(
            GenerationFailure.from_error(SantaHatError("Generation did not complete."))
        )

    sent = state.sent_image or image
    return GenerateResponse(
        image=state.result.to_data_url(),
        mime_type=state.result.mime_type,
        filename=download_filename(),
        optimized=sent is not image,
        sent_width=sent.width,
        sent_height=sent.height,
    )


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~santahat.core.config.config` (which
    loads from ``SANTAHAT_SERVER_HOST`` and ``SANTAHAT_SERVER_PORT``
    environment variables).  Defaults to ``0.0.0.0:7860``.

    This function is registered as the ``santahat`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    uvicorn.run(
        "santahat.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
