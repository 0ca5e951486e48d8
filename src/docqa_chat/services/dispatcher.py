"""Reply dispatcher connecting a session to an asynchronous backend."""

import asyncio
from typing import Optional, Tuple

import structlog

from ..domain.models import Message, SessionState
from ..domain.session import ConversationSession
from .backend import Backend, BackendUnavailableError

logger = structlog.get_logger()

UNAVAILABLE_NOTICE = "The document assistant is not available right now."
TIMEOUT_NOTICE = "The document assistant took too long to answer."
EMPTY_ANSWER_NOTICE = "The document assistant returned an empty answer."
FAILURE_NOTICE = "The document assistant could not answer your question."


class ReplyDispatcher:
    """Sends each user message to the backend and appends the outcome.

    One reply is in flight at a time; the session queues anything submitted
    meanwhile. Replies are appended from a task on the running event loop,
    either fully or not at all.
    """

    def __init__(
        self,
        session: ConversationSession,
        backend: Backend,
        reply_timeout: float = 30.0,
    ) -> None:
        self.session = session
        self.backend = backend
        self.reply_timeout = reply_timeout
        self._task: Optional[asyncio.Task] = None
        session.set_responder(self._dispatch)
        logger.info(
            "dispatcher_attached",
            session_id=str(session.id),
            reply_timeout=reply_timeout,
        )

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def _dispatch(self, message: Message, context: Tuple[Message, ...]) -> None:
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._reply(message, context))

    async def _reply(self, message: Message, context: Tuple[Message, ...]) -> None:
        session_id = str(self.session.id)
        try:
            answer = await asyncio.wait_for(
                self.backend.ask(message.content, context),
                timeout=self.reply_timeout,
            )
            if not isinstance(answer, str):
                logger.error(
                    "backend_invalid_answer",
                    session_id=session_id,
                    message_id=message.id,
                    answer_type=type(answer).__name__,
                )
                self.session.fail_reply(FAILURE_NOTICE)
                return
            if not answer.strip():
                logger.warning("backend_empty_answer", session_id=session_id, message_id=message.id)
                self.session.fail_reply(EMPTY_ANSWER_NOTICE)
                return
            reply = self.session.complete_reply(answer.strip())
            logger.info(
                "reply_appended",
                session_id=session_id,
                message_id=message.id,
                reply_id=reply.id,
                answer_length=len(reply.content),
            )
        except asyncio.CancelledError:
            logger.info("reply_dispatch_cancelled", session_id=session_id, message_id=message.id)
            self.session.cancel_reply()
            raise
        except asyncio.TimeoutError:
            logger.error(
                "backend_reply_timeout",
                session_id=session_id,
                message_id=message.id,
                timeout=self.reply_timeout,
            )
            self.session.fail_reply(TIMEOUT_NOTICE)
        except BackendUnavailableError as e:
            logger.warning("backend_unreachable", session_id=session_id, error=str(e))
            self.session.fail_reply(UNAVAILABLE_NOTICE)
        except Exception as e:
            logger.error(
                "backend_reply_failed",
                session_id=session_id,
                message_id=message.id,
                error=str(e),
            )
            if self._outstanding(message):
                self.session.fail_reply(FAILURE_NOTICE)
        finally:
            if self._outstanding(message):
                logger.error("reply_left_unresolved", session_id=session_id, message_id=message.id)
                self.session.cancel_reply()

    def _outstanding(self, message: Message) -> bool:
        # nothing is appended while a reply is pending, so the question stays the tail
        return (
            self.session.state is SessionState.AWAITING_REPLY
            and self.session.last_id == message.id
        )

    async def wait_idle(self) -> None:
        """Wait until no reply, including queued follow-ups, is in flight."""
        while self.in_flight:
            await asyncio.wait({self._task})

    async def close(self) -> None:
        """Drop queued submissions and cancel the outstanding reply."""
        self.session.discard_pending()
        task = self._task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        # a task cancelled before its first step never reaches its handler
        self.session.cancel_reply()
        self.session.set_responder(None)
        self._task = None
        logger.info("dispatcher_closed", session_id=str(self.session.id))
