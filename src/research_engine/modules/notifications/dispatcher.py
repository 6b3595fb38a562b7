"""
Notification Dispatcher

Hands lifecycle notifications off to background workers so the operation
that triggered them never waits on, or fails because of, mail delivery.

Flow:
    enqueue(event) -> render one message per recipient -> asyncio.Queue
    worker         -> deliver(message): up to max_attempts sends,
                      flat retry delay, terminal failure logged and dropped

Retries are counted per message, so the two messages of an
ApplicationSubmitted event retry independently. Delivery is at-least-once
per attempt sequence; a send that times out after the provider accepted
it may be delivered twice.
"""

import asyncio
import logging
from typing import Protocol

from research_engine.core.config import Settings
from research_engine.core.email import OutgoingEmail

from .events import NotificationEvent
from .templates import render

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    async def send(self, message: OutgoingEmail) -> None: ...


class NotificationDispatcher:
    """Queue-backed, best-effort notification sender."""

    def __init__(
        self,
        transport: MailTransport,
        settings: Settings,
        *,
        max_attempts: int | None = None,
        retry_delay_seconds: float | None = None,
        workers: int | None = None,
    ):
        self._transport = transport
        self._settings = settings
        self._max_attempts = max_attempts or settings.mail_max_attempts
        self._retry_delay = (
            settings.mail_retry_delay_seconds if retry_delay_seconds is None else retry_delay_seconds
        )
        self._worker_count = workers or settings.notification_workers

        self._queue: asyncio.Queue[OutgoingEmail] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []

        self.sent = 0
        self.failed = 0

    @property
    def running(self) -> bool:
        return bool(self._workers)

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def enqueue(self, event: NotificationEvent) -> int:
        """
        Render an event and queue its messages.

        Never raises: a rendering problem is logged and the event dropped.

        Returns:
            Number of messages queued
        """
        try:
            messages = render(event, self._settings)
        except Exception as e:
            logger.error(
                f"Failed to render {type(event).__name__} {getattr(event, 'event_id', None)}: {e}",
                exc_info=True,
            )
            return 0

        for message in messages:
            self._queue.put_nowait(message)

        logger.info(
            f"Enqueued {len(messages)} message(s) for {type(event).__name__} {event.event_id}"
        )
        return len(messages)

    async def deliver(self, message: OutgoingEmail) -> bool:
        """
        Send one message with bounded retry.

        Returns:
            True if the message was sent, False after exhausting attempts
        """
        for attempt in range(1, self._max_attempts + 1):
            try:
                await self._transport.send(message)
                self.sent += 1
                return True
            except Exception as e:
                if attempt < self._max_attempts:
                    logger.warning(
                        f"Email to {message.to} failed (attempt {attempt}/{self._max_attempts}), "
                        f"retrying in {self._retry_delay}s: {e}"
                    )
                    await asyncio.sleep(self._retry_delay)
                else:
                    logger.error(
                        f"Giving up on email '{message.subject}' to {message.to} "
                        f"after {self._max_attempts} attempts: {e}",
                        exc_info=True,
                    )

        self.failed += 1
        return False

    async def _worker(self, index: int) -> None:
        logger.debug(f"Notification worker {index} started")
        while True:
            message = await self._queue.get()
            try:
                await self.deliver(message)
            except Exception as e:
                # deliver() handles send errors; anything else must not kill the worker
                logger.error(f"Notification worker {index} error: {e}", exc_info=True)
            finally:
                self._queue.task_done()

    async def start(self) -> None:
        """Launch the worker tasks."""
        if self._workers:
            logger.warning("Notification dispatcher already running")
            return

        self._workers = [
            asyncio.create_task(self._worker(i), name=f"notification-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info(f"Notification dispatcher started with {self._worker_count} workers")

    async def drain(self) -> None:
        """
        Wait until every queued message has been delivered or given up on.

        When no workers are running the queue is processed inline.
        """
        if self._workers:
            await self._queue.join()
            return

        while not self._queue.empty():
            message = self._queue.get_nowait()
            try:
                await self.deliver(message)
            finally:
                self._queue.task_done()

    async def stop(self) -> None:
        """Drain the queue, then cancel the workers."""
        if not self._workers:
            return

        await self.drain()

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

        logger.info(f"Notification dispatcher stopped (sent={self.sent}, failed={self.failed})")
