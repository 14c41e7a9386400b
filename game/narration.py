"""Staged narration.

Lines that should appear with a pause in between (the partner's remark after
a conversation wraps up, the lawyer walking in, the trial playing out) are
described as an ordered list of ``NarrationStep`` objects and played back by
a ``NarrationQueue``. Ordering is the list order; each step waits for its
own ``delay`` before being emitted.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class NarrationStep:
    """One timed line.

    ``kind`` is 'dialogue', 'stage' or 'system'. ``on_emit`` runs right after
    the line is delivered and is where state changes tied to the line live
    (e.g. the trial phase advancing).
    """

    delay: float
    text: str
    speaker: Optional[str] = None
    kind: str = "dialogue"
    on_emit: Optional[Callable[[], None]] = None


Sink = Callable[[NarrationStep], None]


class NarrationQueue:
    """Single-consumer queue of narration steps."""

    def __init__(
        self,
        sink: Sink,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._sink = sink
        self._sleep = sleep
        self._steps: List[NarrationStep] = []
        self._lock = asyncio.Lock()

    def schedule(self, steps: List[NarrationStep]) -> None:
        self._steps.extend(steps)

    @property
    def pending(self) -> int:
        return len(self._steps)

    async def drain(self) -> List[NarrationStep]:
        """Play every queued step in order. Returns the steps emitted."""
        emitted = []
        async with self._lock:
            while self._steps:
                step = self._steps.pop(0)
                if step.delay > 0:
                    await self._sleep(step.delay)
                self._sink(step)
                if step.on_emit is not None:
                    step.on_emit()
                emitted.append(step)
        if emitted:
            logger.debug("[NARRATION] Emitted %d step(s)", len(emitted))
        return emitted

    async def play(self, steps: List[NarrationStep]) -> List[NarrationStep]:
        self.schedule(steps)
        return await self.drain()
