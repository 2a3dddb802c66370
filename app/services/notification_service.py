"""Background delivery of new-book announcements."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional

from app.core.config import Settings, settings as default_settings
from app.core.constants import EmailSubject, EmailTemplate
from app.services.email import EmailSender, get_email_sender


@dataclass(frozen=True)
class BookCreated:
    book: dict
    recipients: list[dict] = field(default_factory=list)
    added_by: Optional[str] = None


class NotificationService:
    """Owns a bounded queue and one worker task that fans emails out per job.

    Handlers enqueue and return immediately; the worker is started and
    stopped by the application lifespan.
    """

    def __init__(
        self,
        email_sender: EmailSender,
        settings: Settings = None,
        logger: logging.Logger = None,
    ):
        self.email_sender = email_sender
        self.settings = settings or default_settings
        self.logger = logger or logging.getLogger(__name__)
        self._queue: asyncio.Queue[BookCreated] = asyncio.Queue(maxsize=self.settings.NOTIFICATION_QUEUE_SIZE)
        self._worker: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self.is_running:
            return
        self._worker = asyncio.create_task(self._run(), name="book-notifications")
        self.logger.info("Notification worker started")

    async def stop(self, timeout: float = 5.0) -> None:
        """Let queued jobs finish for up to ``timeout`` seconds, then cancel the worker."""
        if not self.is_running:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            self.logger.warning(f"Dropping {self._queue.qsize()} pending notification jobs on shutdown")

        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None
        self.logger.info("Notification worker stopped")

    def enqueue_book_created(self, users: list[dict], book: dict, added_by: Optional[str] = None) -> bool:
        """Queue an announcement for ``book``. Never blocks; returns False when the queue is full."""
        job = BookCreated(book=book, recipients=list(users), added_by=added_by)
        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            self.logger.error(f"Notification queue full, dropping announcement for book {book.get('id')}")
            return False
        return True

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                await self.process(job)
            except Exception:
                self.logger.exception(f"Notification job for book {job.book.get('id')} failed")
            finally:
                self._queue.task_done()

    async def process(self, job: BookCreated) -> int:
        """Send one announcement per recipient concurrently. Returns how many were delivered."""
        recipients = [user for user in job.recipients if user.get("email")]
        if not recipients:
            return 0

        results = await asyncio.gather(
            *(self._send(user["email"], job) for user in recipients),
            return_exceptions=True,
        )

        delivered = 0
        for user, result in zip(recipients, results):
            if isinstance(result, Exception):
                self.logger.error(f"Book notification to {user['email']} raised: {result}")
            elif not result:
                self.logger.warning(f"Book notification to {user['email']} was not delivered")
            else:
                delivered += 1

        self.logger.info(
            f"Book {job.book.get('id')} announced to {delivered}/{len(recipients)} users"
        )
        return delivered

    async def _send(self, email: str, job: BookCreated) -> bool:
        book = job.book
        return await self.email_sender.send(
            email,
            EmailSubject.NEW_BOOK,
            EmailTemplate.NEW_BOOK,
            {
                "first_name": email.split("@")[0],
                "book_title": book["title"],
                "book_author": book["author"],
                "added_by": job.added_by or "System",
                "book_category": book.get("category"),
                "book_published_date": book.get("published_date"),
            },
        )


_notification_service: Optional[NotificationService] = None


def get_notification_service() -> NotificationService:
    """Application-wide notification service (singleton)."""
    global _notification_service

    if _notification_service is None:
        _notification_service = NotificationService(get_email_sender())

    return _notification_service
