"""Generation session state machine.

A session drives one image through the pipeline and tracks where it stands:

    Idle --Generate--> Processing --ok--> Success
                                  --err-> Error
    Success/Error --Reset--> Idle
    Success/Error --Generate--> Processing   (manual retry)
    any (not Processing) --ImageSelected--> Idle

State is an explicit tagged union (:class:`Idle`, :class:`Processing`,
:class:`Success`, :class:`Error`) changed only through :meth:`GenerationSession.dispatch`.
The pipeline itself (:meth:`GenerationSession.run`) resolves the credential,
optionally runs the avatar compositor with fallback, and calls the
generation client.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from .compositor import AvatarCompositor, prepare_for_avatar
from .credentials import CredentialResolver
from .errors import GenerationFailed, MissingCredential, SantaHatError
from .generation import GenerationClient
from .models import GenerationFailure, GenerationResult, ImageAsset

logger = logging.getLogger(__name__)


class AppStatus(str, Enum):
    IDLE = "idle"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Idle:
    status: AppStatus = field(default=AppStatus.IDLE, init=False)


@dataclass(frozen=True)
class Processing:
    status: AppStatus = field(default=AppStatus.PROCESSING, init=False)


@dataclass(frozen=True)
class Success:
    result: GenerationResult
    sent_image: ImageAsset | None = None
    status: AppStatus = field(default=AppStatus.SUCCESS, init=False)


@dataclass(frozen=True)
class Error:
    failure: GenerationFailure
    status: AppStatus = field(default=AppStatus.ERROR, init=False)


SessionState = Idle | Processing | Success | Error


# Events


@dataclass(frozen=True)
class ImageSelected:
    image: ImageAsset


@dataclass(frozen=True)
class ToggleOptimize:
    enabled: bool


@dataclass(frozen=True)
class Generate:
    pass


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Completed:
    result: GenerationResult
    sent_image: ImageAsset | None = None


@dataclass(frozen=True)
class Failed:
    failure: GenerationFailure


SessionEvent = ImageSelected | ToggleOptimize | Generate | Reset | Completed | Failed


class SessionBusy(RuntimeError):
    """An action was attempted while a generation is in flight."""


class GenerationSession:
    """One user's generation workflow.

    Attributes
    ----------
    resolver : CredentialResolver
        Resolves the API key at the start of each attempt
    compositor : AvatarCompositor
        Used when ``optimize_for_avatar`` is on
    client : GenerationClient
        Talks to the remote model
    image : ImageAsset | None
        Currently selected image
    optimize_for_avatar : bool
        Pad the image for circular crops before sending it
    state : SessionState
        Current state
    """

    def __init__(
        self,
        resolver: CredentialResolver,
        client: GenerationClient,
        compositor: AvatarCompositor | None = None,
        optimize_for_avatar: bool = True,
    ) -> None:
        self.resolver = resolver
        self.client = client
        self.compositor = compositor or AvatarCompositor()
        self.image: ImageAsset | None = None
        self.optimize_for_avatar = optimize_for_avatar
        self.state: SessionState = Idle()

    @property
    def status(self) -> AppStatus:
        return self.state.status

    @property
    def result(self) -> GenerationResult | None:
        return self.state.result if isinstance(self.state, Success) else None

    @property
    def failure(self) -> GenerationFailure | None:
        return self.state.failure if isinstance(self.state, Error) else None

    def dispatch(self, event: SessionEvent) -> SessionState:
        """Apply ``event`` and return the new state.

        Raises:
            SessionBusy: If the event is not allowed while processing
        """
        busy = isinstance(self.state, Processing)

        if isinstance(event, ImageSelected):
            if busy:
                raise SessionBusy("Cannot change the image while generating")
            self.image = event.image
            self.state = Idle()

        elif isinstance(event, ToggleOptimize):
            if busy:
                raise SessionBusy("Cannot change options while generating")
            self.optimize_for_avatar = event.enabled

        elif isinstance(event, Reset):
            if busy:
                raise SessionBusy("Cannot reset while generating")
            self.image = None
            self.state = Idle()

        elif isinstance(event, Generate):
            if busy:
                raise SessionBusy("A generation is already in progress")
            if self.image is None:
                logger.debug("Generate ignored: no image selected")
                return self.state
            self.state = Processing()

        elif isinstance(event, Completed):
            if busy:
                self.state = Success(result=event.result, sent_image=event.sent_image)

        elif isinstance(event, Failed):
            if busy:
                self.state = Error(failure=event.failure)

        else:
            raise TypeError(f"Unknown session event: {event!r}")

        logger.debug(f"{type(event).__name__} -> {self.status.value}")
        return self.state

    async def run(self, api_key: str | None = None) -> SessionState:
        """Execute the attempt started by a ``Generate`` event.

        Args:
            api_key: Key for this attempt only; overrides the stored key

        Returns:
            Terminal state (Success or Error)
        """
        if not isinstance(self.state, Processing) or self.image is None:
            return self.state

        try:
            key = self.resolver.resolve(api_key)
            if not key:
                raise MissingCredential()

            image = self.image
            if self.optimize_for_avatar:
                image = await asyncio.to_thread(prepare_for_avatar, image, self.compositor)

            result = await self.client.generate(image, key)
        except SantaHatError as e:
            return self.dispatch(Failed(GenerationFailure.from_error(e)))
        except Exception as e:
            logger.error(f"Unexpected error during generation: {e}", exc_info=True)
            return self.dispatch(
                Failed(GenerationFailure.from_error(GenerationFailed(str(e) or None)))
            )

        return self.dispatch(Completed(result=result, sent_image=image))

    async def generate(self, api_key: str | None = None) -> SessionState:
        """Start (or retry) a generation and wait for its outcome."""
        self.dispatch(Generate())
        return await self.run(api_key)

    def __repr__(self) -> str:
        image = f"{self.image.width}x{self.image.height}" if self.image else None
        return (
            f"GenerationSession(status={self.status.value}, image={image}, "
            f"optimize={self.optimize_for_avatar})"
        )
