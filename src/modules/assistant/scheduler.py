"""Fire-and-forget scheduling of reply pipeline runs on the running loop."""

from __future__ import annotations

import asyncio
import logging
import uuid

from src.modules.assistant.pipeline import ReplyOutcome, ReplyPipeline

logger = logging.getLogger(__name__)


class ReplyScheduler:
    """Starts one background task per triggering message.

    Tasks are held in ``_tasks`` until done so the loop cannot garbage
    collect them mid-flight. No ordering is enforced between runs for the
    same conversation.
    """

    def __init__(self, pipeline: ReplyPipeline) -> None:
        self.pipeline = pipeline
        self._tasks: set[asyncio.Task[ReplyOutcome]] = set()

    def schedule(
        self, conversation_id: uuid.UUID, user_id: uuid.UUID, content: str
    ) -> asyncio.Task[ReplyOutcome]:
        task = asyncio.create_task(
            self.pipeline.run(conversation_id, user_id, content),
            name=f"reply:{conversation_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight runs; used by tests and on shutdown."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            logger.warning("%d reply task(s) still running after drain", len(pending))

    async def shutdown(self, timeout: float = 10.0) -> None:
        await self.drain(timeout)
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    def _on_done(self, task: asyncio.Task[ReplyOutcome]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.info("Reply task %s cancelled", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Reply task %s failed", task.get_name(), exc_info=exc)
