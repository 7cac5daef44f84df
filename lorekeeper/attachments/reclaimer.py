"""
Attachment reclamation for Lorekeeper.

After a document edit has been saved, the attachments referenced by the old
version but not by the new one are deleted from storage. Deletions run
concurrently and every attempt is allowed to settle; a failed deletion only
leaves an orphaned object behind and is never reported as a save failure.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Set, Tuple, Union

from ..config import config
from ..models import DeletionResult, ReclaimReport, ReclamationPlan
from .extractor import extract_attachment_urls
from .storage import BaseStorage


class AttachmentReclaimer:
    """
    Deletes attachments that a document edit made unreferenced.

    The reclaimer keeps no state between runs: reclaiming the same pair twice
    issues the same deletions twice.
    """

    def __init__(self, storage: BaseStorage, max_concurrent: Optional[int] = None):
        """
        Initialize the reclaimer.

        Args:
            storage: Storage-delete collaborator
            max_concurrent: Bound on in-flight deletions (defaults to config
                value; None or 0 means unbounded)
        """
        self.storage = storage
        if max_concurrent is None:
            max_concurrent = config.max_concurrent_deletions
        self.max_concurrent = max_concurrent or None
        self._pending: Set[asyncio.Task] = set()

    def plan(self, old_content: Any, new_content: Any) -> ReclamationPlan:
        """
        Compute which attachments an edit removed and which of them may be deleted.

        Args:
            old_content: The document before the edit
            new_content: The document after the edit

        Returns:
            ReclamationPlan with the removed URLs split into owned targets
            and skipped foreign URLs
        """
        removed = extract_attachment_urls(old_content) - extract_attachment_urls(new_content)

        targets = []
        skipped = []
        for url in sorted(removed):
            if self.storage.owns(url):
                targets.append(url)
            else:
                skipped.append(url)

        return ReclamationPlan(removed=sorted(removed), targets=targets, skipped=skipped)

    async def reclaim(self, old_content: Any, new_content: Any) -> ReclaimReport:
        """
        Delete the attachments an edit removed.

        All deletions start together and all of them settle before the report
        is returned; one failure never cancels the others.

        Args:
            old_content: The document before the edit
            new_content: The document after the edit (already persisted)

        Returns:
            ReclaimReport with one DeletionResult per deleted target
        """
        plan = self.plan(old_content, new_content)

        for url in plan.skipped:
            logging.info(f"Skipping attachment outside the storage domain: {url}")

        semaphore = asyncio.Semaphore(self.max_concurrent) if self.max_concurrent else None
        results = await asyncio.gather(*(self._delete_one(url, semaphore) for url in plan.targets))

        report = ReclaimReport(removed=plan.removed, skipped=plan.skipped, results=list(results))
        logging.info(f"Attachment cleanup: {report.summary()}")
        return report

    async def _delete_one(self, url: str, semaphore: Optional[asyncio.Semaphore]) -> DeletionResult:
        try:
            if semaphore is None:
                result = await self.storage.delete_object(url)
            else:
                async with semaphore:
                    result = await self.storage.delete_object(url)
        except Exception as e:
            result = DeletionResult(url=url, success=False, reason=f"{type(e).__name__}: {e}")

        if result.success:
            logging.info(f"Deleted unused attachment: {url}")
        else:
            logging.error(f"Failed to delete attachment {url}: {result.reason}")
        return result

    async def reclaim_after_save(
        self,
        save: Callable[[], Union[Any, Awaitable[Any]]],
        old_content: Any,
        new_content: Any,
    ) -> Tuple[Any, ReclaimReport]:
        """
        Run a save, then reclaim the attachments it made unreferenced.

        Args:
            save: Callable persisting ``new_content``; may return an awaitable
            old_content: The document before the edit
            new_content: The document being saved

        Returns:
            ``(save_result, report)``

        Raises:
            Whatever the save raises; nothing is reclaimed in that case.
        """
        try:
            result = save()
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logging.error(f"Save failed, skipping attachment cleanup: {e}")
            raise

        report = await self.reclaim(old_content, new_content)
        return result, report

    def schedule(self, old_content: Any, new_content: Any) -> "asyncio.Task[ReclaimReport]":
        """
        Start reclamation in the background of the running event loop.

        The returned task always completes with a report; callers may ignore it.
        """
        task = asyncio.create_task(self.reclaim(old_content, new_content))
        # Hold a reference until the task finishes so it is not collected mid-flight
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task


def reclaim_sync(storage: BaseStorage, old_content: Any, new_content: Any,
                 max_concurrent: Optional[int] = None) -> ReclaimReport:
    """Run one reclamation to completion outside an event loop."""

    async def _run() -> ReclaimReport:
        async with storage:
            return await AttachmentReclaimer(storage, max_concurrent).reclaim(old_content, new_content)

    return asyncio.run(_run())
