from __future__ import annotations

import asyncio
import json
import logging

from dataclasses import dataclass
from typing import Callable, List, Optional, Set, Tuple

import numpy as np

from facematch.config import DISPLAY_SIZE, MATCH_INTERVAL_SEC
from facematch.face.matcher import FaceMatcher
from facematch.face.types import FaceMatch, resize_results
from facematch.utils.log import get_logger
from facematch.utils.serializer import serialize_tick
from facematch.video.presentation import Overlay
from facematch.video.state import CancellationToken, MatchState

logger = get_logger(__name__)

# What happens to 'unknown' results that arrive once a match is locked:
#   keep  - ignored; the locked label stays on screen
#   clear - results are applied in list order, so an unknown face after the locking one
#           (same tick or a late in-flight tick) clears the label, and a later known face
#           never replaces the locked one; polling stays stopped
UNKNOWN_AFTER_LOCK_POLICIES = ("keep", "clear")


@dataclass
class LoopConfig:
    interval_sec: float = MATCH_INTERVAL_SEC
    display_size: Tuple[int, int] = DISPLAY_SIZE
    unknown_after_lock: str = "keep"

    def __post_init__(self):
        if float(self.interval_sec) <= 0:
            raise ValueError(f"interval_sec must be > 0, got {self.interval_sec}")
        if self.unknown_after_lock not in UNKNOWN_AFTER_LOCK_POLICIES:
            raise ValueError(
                f"unknown_after_lock must be one of {UNKNOWN_AFTER_LOCK_POLICIES}, got {self.unknown_after_lock!r}"
            )


class MatchLoop:
    """Polls the current frame on a fixed interval until the first confirmed match.

    Two states: armed (timer running) and locked (a label matched, timer cancelled
    for good). The lock flag belongs to the loop; ticks read it when they commit,
    never a copy taken when the loop started.

    Ticks are spawned independently, so a slow tick can overlap the next one. Every
    tick re-checks the cancellation token after its detection call and drops its
    result when the session is being torn down.
    """

    def __init__(
        self,
        engine,
        matcher: FaceMatcher,
        frame_source: Callable[[], Optional[np.ndarray]],
        state: MatchState,
        overlay: Overlay,
        config: Optional[LoopConfig] = None,
        token: Optional[CancellationToken] = None,
    ):
        self.engine = engine
        self.matcher = matcher
        self.config = config or LoopConfig()
        self.state = state
        self.overlay = overlay
        self.token = token or CancellationToken()
        self._frame_source = frame_source

        self.locked = False
        self.locked_event = asyncio.Event()
        self.ticks_started = 0
        self.ticks_committed = 0

        self._timer: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def inflight(self) -> int:
        return len(self._inflight)

    def start(self) -> None:
        if self._timer is not None:
            raise RuntimeError("match loop already started")
        logger.info(f"Match loop armed: every {self.config.interval_sec:.2f}s, {len(self.matcher.labels)} references")
        self._timer = asyncio.create_task(self._run_timer())

    async def _run_timer(self) -> None:
        interval = float(self.config.interval_sec)
        while True:
            await asyncio.sleep(interval)
            if self.token.cancelled or self.locked:
                return
            self._spawn_tick()

    def _spawn_tick(self) -> None:
        self.ticks_started += 1
        task = asyncio.create_task(self._guarded_tick())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _guarded_tick(self) -> None:
        try:
            await self.tick()
        except Exception:
            logger.exception("❌ Match tick failed; skipping this update")

    def _cancel_timer(self) -> None:
        timer = self._timer
        if timer is not None and not timer.done() and timer is not asyncio.current_task():
            timer.cancel()

    async def tick(self) -> Optional[List[FaceMatch]]:
        """Run one detection/match pass. Returns the matches, or None when the result was dropped."""
        frame = self._frame_source()
        display_size = tuple(self.config.display_size)
        if frame is None:
            detections = []
            frame_size = display_size
        else:
            frame_size = (int(frame.shape[1]), int(frame.shape[0]))
            detections = await asyncio.to_thread(self.engine.detect_all, frame)

        if self.token.cancelled:
            logger.debug("Tick finished after teardown; result dropped")
            return None

        resized = resize_results(detections, frame_size, display_size)
        matches = [self.matcher.find_best_match(d.descriptor) for d in resized]
        logger.info(f"🧠 Detected faces: {len(matches)} {[str(m) for m in matches]}")
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(json.dumps(serialize_tick(resized, matches, display_size), ensure_ascii=False))

        if self.locked and self.config.unknown_after_lock == "keep":
            logger.debug("Tick finished after lock; result dropped")
            return None

        self.overlay.clear()
        for det, match in zip(resized, matches):
            self.overlay.draw_box(det.box, str(match))

        if self.config.unknown_after_lock == "clear":
            self._apply_in_order(matches)
        else:
            self._apply_first_known(matches)
        self.ticks_committed += 1
        return matches

    def _apply_first_known(self, matches: List[FaceMatch]) -> None:
        winner = next((m for m in matches if not m.is_unknown), None)
        if winner is not None:
            self._lock(winner.label)
        else:
            self.state.set_no_match()

    def _apply_in_order(self, matches: List[FaceMatch]) -> None:
        if not matches:
            self.state.set_no_match()
        for match in matches:
            if match.is_unknown:
                self.state.set_no_match()
            elif not self.locked:
                self._lock(match.label)

    def _lock(self, label: str) -> None:
        logger.info(f"🎯 First match found: {label}")
        self.state.set_matched(label)
        self.locked = True
        self.locked_event.set()
        self._cancel_timer()

    async def stop(self) -> None:
        """Cancel the timer and every in-flight tick, then wait for them to unwind."""
        tasks = [t for t in [self._timer, *self._inflight] if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()
