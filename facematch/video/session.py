from __future__ import annotations

import asyncio

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from facematch.config import KNOWN_FACES_ROOT, REFERENCE_LABELS
from facematch.errors import ModelLoadError
from facematch.face.gallery import build_reference_set
from facematch.face.matcher import FaceMatcher, MatcherConfig
from facematch.face.profiles import ProfileBook
from facematch.face.types import LabeledDescriptor
from facematch.utils.log import get_logger
from facematch.video.loop import LoopConfig, MatchLoop
from facematch.video.presentation import Overlay, render
from facematch.video.state import CancellationToken, MatchState

logger = get_logger(__name__)


@dataclass
class SessionConfig:
    known_faces_root: str = KNOWN_FACES_ROOT
    labels: Sequence[str] = REFERENCE_LABELS
    loop: LoopConfig = field(default_factory=LoopConfig)
    matcher: MatcherConfig = field(default_factory=MatcherConfig)


class FaceMatchSession:
    """One mount of the face match page.

    Control flow: load models -> open camera -> first frame (playback start) ->
    build the reference set -> arm the match loop. `close()` tears everything down;
    nothing restarts the loop except a new session.
    """

    def __init__(
        self,
        engine,
        camera,
        config: Optional[SessionConfig] = None,
        profiles: Optional[ProfileBook] = None,
    ):
        self.engine = engine
        self.camera = camera
        self.config = config or SessionConfig()
        self.profiles = profiles if profiles is not None else ProfileBook.default()

        self.state = MatchState()
        self.overlay = Overlay(tuple(self.config.loop.display_size))
        self.token = CancellationToken()

        self.models_loaded = False
        self.camera_ready = False
        self.references: List[LabeledDescriptor] = []
        self.loop: Optional[MatchLoop] = None
        self.latest_frame: Optional[np.ndarray] = None

        self._playing = False
        self._play_task: Optional[asyncio.Task] = None
        self._closed = False

    async def __aenter__(self) -> "FaceMatchSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def locked(self) -> bool:
        return self.loop is not None and self.loop.locked

    async def start(self) -> bool:
        """Load models then open the camera. False when either failed (already logged)."""
        try:
            await asyncio.to_thread(self.engine.load)
        except ModelLoadError as e:
            logger.error(f"❌ Startup aborted, models unavailable: {e}")
            return False
        self.models_loaded = True

        self.camera_ready = bool(await asyncio.to_thread(self.camera.open))
        return self.camera_ready

    async def next_frame(self) -> Optional[np.ndarray]:
        """Pull the next camera frame into the video surface.

        The first frame counts as playback start and kicks off the reference set build.
        """
        if self._closed or not self.camera_ready:
            return None
        frame = await asyncio.to_thread(self.camera.read)
        if frame is None or self._closed:
            return None
        self.latest_frame = frame
        if not self._playing:
            self._playing = True
            logger.info("✅ Webcam video started")
            self._play_task = asyncio.create_task(self._on_play())
        return frame

    async def _on_play(self) -> None:
        try:
            refs = await build_reference_set(self.engine, self.config.known_faces_root, self.config.labels)
            if self.token.cancelled:
                return
            self.references = refs
            if not refs:
                logger.warning("⚠️ No known faces loaded.")
                return

            matcher = FaceMatcher(refs, self.config.matcher)
            self.loop = MatchLoop(
                self.engine,
                matcher,
                frame_source=lambda: self.latest_frame,
                state=self.state,
                overlay=self.overlay,
                config=self.config.loop,
                token=self.token,
            )
            self.loop.start()
        except Exception:
            logger.exception("❌ Failed to arm the match loop")

    async def wait_until_armed(self) -> bool:
        """Wait for the playback-start work to finish; True when a match loop is running or locked."""
        if self._play_task is not None:
            await asyncio.gather(self._play_task, return_exceptions=True)
        return self.loop is not None

    async def wait_for_match(self, timeout: Optional[float] = None) -> bool:
        if not await self.wait_until_armed():
            return False
        try:
            await asyncio.wait_for(self.loop.locked_event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def render(self) -> np.ndarray:
        return render(
            self.latest_frame,
            self.overlay,
            self.state,
            self.profiles,
            tuple(self.config.loop.display_size),
        )

    def outcome(self) -> dict:
        label = self.state.matched_label
        return {
            "matched_label": label,
            "no_match": bool(self.state.no_match),
            "locked": self.locked,
            "ticks": self.loop.ticks_committed if self.loop is not None else 0,
            "reference_labels": [r.label for r in self.references],
            "profile": self.profiles.to_dict(label) if label else None,
        }

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.token.cancel()

        if self._play_task is not None and not self._play_task.done():
            self._play_task.cancel()
            await asyncio.gather(self._play_task, return_exceptions=True)
        if self.loop is not None:
            await self.loop.stop()
        self.camera.release()
        logger.info(f"Session closed: {self.state.as_dict()}")
