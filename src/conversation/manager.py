"""ConversationManager -- orchestrates one user turn end to end.

A turn moves through received -> context-built -> model-invoked ->
persisted -> responded. A failing model call switches the turn to
degraded-response: the fixed fallback reply is stored and returned in place of
generated text, and note extraction is skipped. Storage failures abort the
turn with TurnProcessingError. The session state update runs last, so a
failed turn never counts towards messageCount.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from ..exceptions import (
    InvalidPayloadError,
    ModelInvocationError,
    StorageError,
    TurnProcessingError,
)
from ..knowledge.manager import KnowledgeManager
from ..llm.interface import ChatModel
from ..storage.repositories import MessageRepository
from .context import ContextBuilder
from .models import Message, TurnResult, TurnStage
from .state import SessionStateStore

logger = structlog.get_logger()

FALLBACK_REPLY = "I'm having trouble processing that right now. Could you try again?"
DEFAULT_MODEL_TIMEOUT = 30.0

ProcessingCallback = Callable[[], Awaitable[None]]


class ConversationManager:
    """Receives user messages and produces persisted assistant replies."""

    def __init__(
        self,
        messages: MessageRepository,
        state_store: SessionStateStore,
        context_builder: ContextBuilder,
        model: ChatModel,
        knowledge: KnowledgeManager,
        model_timeout: float = DEFAULT_MODEL_TIMEOUT,
    ) -> None:
        self._messages = messages
        self._state = state_store
        self._context = context_builder
        self._model = model
        self._knowledge = knowledge
        self._model_timeout = model_timeout

    async def handle_turn(
        self,
        session_id: str,
        user_message: str,
        on_processing: Optional[ProcessingCallback] = None,
    ) -> str:
        """Process a turn and return only the reply text."""
        result = await self.process_turn(session_id, user_message, on_processing)
        return result.reply

    async def process_turn(
        self,
        session_id: str,
        user_message: str,
        on_processing: Optional[ProcessingCallback] = None,
    ) -> TurnResult:
        """Process one user turn.

        Args:
            session_id: Conversation the message belongs to.
            user_message: Text sent by the user.
            on_processing: Awaited once the context is ready and before the
                model is called, so transports can tell the client work has
                started.

        Returns:
            TurnResult with the reply and the terminal stage.

        Raises:
            InvalidPayloadError: If the message is empty; nothing is stored.
            TurnProcessingError: If any storage step fails.
        """
        if not isinstance(user_message, str) or not user_message.strip():
            raise InvalidPayloadError("message must be a non-empty string")

        stage = TurnStage.RECEIVED
        try:
            await self._state.initialize(session_id)
            stored = await self._messages.append(session_id, "user", user_message)

            context = await self._context.build(
                session_id, user_message, exclude_from_id=stored.id
            )
            stage = TurnStage.CONTEXT_BUILT

            if on_processing is not None:
                await on_processing()

            reply, degraded = await self._invoke_model(session_id, context)
            stage = TurnStage.DEGRADED if degraded else TurnStage.MODEL_INVOKED

            await self._messages.append(session_id, "assistant", reply)
            note = None
            if not degraded:
                note = await self._knowledge.extract_and_store(
                    session_id, user_message, reply
                )
                stage = TurnStage.PERSISTED

            state = await self._state.record_turn(session_id)
        except StorageError as exc:
            logger.error(
                "Turn aborted by storage failure",
                session_id=session_id,
                stage=stage.value,
                error=str(exc),
                exc_info=True,
            )
            raise TurnProcessingError(session_id, stage.value, exc) from exc

        if not degraded:
            stage = TurnStage.RESPONDED

        logger.info(
            "Turn completed",
            session_id=session_id,
            stage=stage.value,
            message_count=state.message_count,
            note_saved=note is not None,
        )
        return TurnResult(
            session_id=session_id,
            reply=reply,
            stage=stage,
            degraded=degraded,
            note_saved=note is not None,
            message_count=state.message_count,
        )

    async def get_history(self, session_id: str, limit: int = 20) -> list[Message]:
        """Most recent ``limit`` messages, oldest first."""
        return await self._messages.recent(session_id, limit)

    async def _invoke_model(
        self, session_id: str, context: list[dict[str, str]]
    ) -> tuple[str, bool]:
        """Call the model; any failure yields (FALLBACK_REPLY, True)."""
        try:
            reply = await asyncio.wait_for(
                self._model.complete(context, session_id=session_id),
                timeout=self._model_timeout,
            )
            if not isinstance(reply, str) or not reply.strip():
                raise ModelInvocationError("model returned an empty reply")
            return reply, False
        except asyncio.TimeoutError:
            logger.error(
                "Model call timed out",
                session_id=session_id,
                stage=TurnStage.MODEL_INVOKED.value,
                timeout=self._model_timeout,
            )
        except Exception as exc:
            logger.error(
                "Model call failed",
                session_id=session_id,
                stage=TurnStage.MODEL_INVOKED.value,
                error=str(exc),
                error_type=type(exc).__name__,
            )
        return FALLBACK_REPLY, True
