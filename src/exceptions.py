"""Assistant error hierarchy."""

from typing import Optional

USER_SAFE_ERROR = "Sorry, an error occurred processing your message."


class AssistantError(Exception):
    """Base error for the assistant service."""


class StorageError(AssistantError):
    """A database operation failed."""


class ModelInvocationError(AssistantError):
    """The language model call failed, timed out or returned nothing usable."""


class InvalidPayloadError(AssistantError):
    """An inbound chat payload could not be understood."""


class TurnProcessingError(AssistantError):
    """A conversation turn could not be completed.

    Carries the session and the stage the turn had reached so the failure can
    be diagnosed from logs. The message shown to callers is always
    ``USER_SAFE_ERROR``.
    """

    def __init__(
        self,
        session_id: str,
        stage: str,
        cause: Optional[BaseException] = None,
    ) -> None:
        self.session_id = session_id
        self.stage = stage
        self.cause = cause
        super().__init__(
            f"Turn failed for session {session_id} at stage '{stage}'"
            + (f": {cause}" if cause else "")
        )
