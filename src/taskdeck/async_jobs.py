from __future__ import annotations

import asyncio
import logging

from taskdeck.config import Settings
from taskdeck.models import Task, TaskDraft, normalize_draft
from taskdeck.store import TaskStore

logger = logging.getLogger(__name__)


async def add_with_delay(store: TaskStore, draft: TaskDraft, delay: float | None = None) -> Task | None:
    """Add ``draft`` after a cosmetic pause while ``store.adding`` is set.

    The task is applied in one step once the pause is over, and no other
    mutation reaches the store meanwhile, so the resulting order is the same
    as for :meth:`TaskStore.add`. Returns None without waiting for a blank
    name, and immediately while another add is pending. ``delay`` defaults to
    the configured ``TASKDECK_ADD_DELAY``.
    """
    if delay is None:
        delay = Settings.from_env().add_delay
    if delay < 0:
        raise ValueError("delay must be >= 0")
    if normalize_draft(draft) is None:
        return None

    with store.adding_in_progress() as apply_add:
        if apply_add is None:
            logger.debug("Add rejected: another add is still pending")
            return None
        await asyncio.sleep(delay)
        return apply_add(draft)
