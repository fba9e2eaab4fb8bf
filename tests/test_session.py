from __future__ import annotations

import asyncio

from pathlib import Path

import cv2
import numpy as np

from facematch.face.matcher import MatcherConfig
from facematch.face.profiles import ProfileBook
from facematch.video.loop import LoopConfig
from facematch.video.presentation import MATCH_TITLE, NO_MATCH_TEXT, panel_lines
from facematch.video.session import FaceMatchSession, SessionConfig

from fakes import DESCRIPTORS, STRANGER, FakeCamera, FakeEngine, face

LABELS = ("user1", "user2", "user3", "user4")


def _known_faces(tmp_path: Path, labels) -> Path:
    """Write one gray reference image per label; gray level i*50+25 identifies the label."""
    root = tmp_path / "known_faces"
    root.mkdir()
    for i, label in enumerate(labels):
        img = np.full((32, 32, 3), 25 + 50 * i, dtype=np.uint8)
        assert cv2.imwrite(str(root / f"{label}.jpeg"), img)
    return root


def _pixels(labels):
    return {25 + 50 * i: DESCRIPTORS[label] for i, label in enumerate(labels)}


def _session(engine, camera, root: Path, interval: float = 0.02) -> FaceMatchSession:
    config = SessionConfig(
        known_faces_root=str(root),
        labels=LABELS,
        loop=LoopConfig(interval_sec=interval, display_size=(320, 240)),
        matcher=MatcherConfig(distance_threshold=1.1),
    )
    return FaceMatchSession(engine, camera, config, ProfileBook.default())


def test_first_match_locks_and_shows_profile(tmp_path: Path):
    root = _known_faces(tmp_path, ["user1", "user2"])
    engine = FakeEngine(default=[face(DESCRIPTORS["user1"])], reference_pixels=_pixels(["user1", "user2"]))
    camera = FakeCamera()

    async def scenario():
        async with _session(engine, camera, root) as session:
            assert await session.start()
            assert await session.next_frame() is not None
            assert await session.wait_for_match(timeout=2.0)
            return session

    session = asyncio.run(scenario())
    assert [r.label for r in session.references] == ["user1", "user2"]
    assert session.locked
    assert (session.state.matched_label, session.state.no_match) == ("user1", False)

    lines = [text for text, _ in panel_lines(session.state, session.profiles)]
    assert lines[0] == MATCH_TITLE
    assert "Name: Bebooo Love You" in lines
    assert "User ID: 1" in lines
    assert NO_MATCH_TEXT not in lines

    outcome = session.outcome()
    assert outcome["matched_label"] == "user1"
    assert outcome["locked"] is True
    assert outcome["ticks"] == 1
    assert outcome["profile"] == {"name": "Bebooo Love You", "email": "john@example.com", "id": "1"}
    assert camera.released


def test_empty_reference_set_never_starts_loop(tmp_path: Path):
    root = tmp_path / "known_faces"
    root.mkdir()
    # every image decodes but has no face
    for i, label in enumerate(LABELS):
        assert cv2.imwrite(str(root / f"{label}.jpeg"), np.full((32, 32, 3), 25 + 50 * i, dtype=np.uint8))
    engine = FakeEngine(
        default=[face(DESCRIPTORS["user1"])],
        reference_pixels={25 + 50 * i: None for i in range(len(LABELS))},
    )

    async def scenario():
        async with _session(engine, FakeCamera(), root) as session:
            await session.start()
            await session.next_frame()
            assert not await session.wait_until_armed()
            await asyncio.sleep(0.1)
            return session

    session = asyncio.run(scenario())
    assert session.loop is None
    assert session.references == []
    assert engine.detect_single_calls == 4
    assert engine.detect_all_calls == 0
    assert (session.state.matched_label, session.state.no_match) == (None, False)
    assert panel_lines(session.state, session.profiles) == []


def test_model_load_failure_aborts_before_camera(tmp_path: Path):
    engine = FakeEngine(fail_load=True)
    camera = FakeCamera()

    async def scenario():
        async with _session(engine, camera, tmp_path) as session:
            ok = await session.start()
            frame = await session.next_frame()
            return session, ok, frame

    session, ok, frame = asyncio.run(scenario())
    assert ok is False
    assert frame is None
    assert session.models_loaded is False
    assert camera.open_calls == 0
    assert session.outcome()["matched_label"] is None


def test_camera_failure_never_builds_references(tmp_path: Path):
    root = _known_faces(tmp_path, LABELS)
    engine = FakeEngine(reference_pixels=_pixels(LABELS))

    async def scenario():
        async with _session(engine, FakeCamera(ok=False), root) as session:
            ok = await session.start()
            frame = await session.next_frame()
            armed = await session.wait_until_armed()
            return session, ok, frame, armed

    session, ok, frame, armed = asyncio.run(scenario())
    assert ok is False and frame is None and armed is False
    assert session.models_loaded is True
    assert engine.detect_single_calls == 0
    assert session.render().shape[1:] == (320, 3)


def test_no_match_banner_until_face_is_recognized(tmp_path: Path):
    root = _known_faces(tmp_path, LABELS)
    engine = FakeEngine(
        scripted=[[face(STRANGER)], []],
        default=[face(DESCRIPTORS["user3"])],
        reference_pixels=_pixels(LABELS),
    )

    async def scenario():
        async with _session(engine, FakeCamera(), root) as session:
            await session.start()
            await session.next_frame()
            assert await session.wait_until_armed()
            seen_no_match = False
            while not session.locked:
                seen_no_match = seen_no_match or session.state.no_match
                await asyncio.sleep(0.005)
            return session, seen_no_match

    session, seen_no_match = asyncio.run(asyncio.wait_for(scenario(), 5.0))
    assert seen_no_match
    assert (session.state.matched_label, session.state.no_match) == ("user3", False)


def test_close_cancels_polling_and_is_idempotent(tmp_path: Path):
    root = _known_faces(tmp_path, LABELS)
    engine = FakeEngine(default=[face(STRANGER)], reference_pixels=_pixels(LABELS))
    camera = FakeCamera()

    async def scenario():
        session = _session(engine, camera, root)
        await session.start()
        await session.next_frame()
        await session.wait_until_armed()
        await asyncio.sleep(0.1)
        await session.close()
        calls = engine.detect_all_calls
        await asyncio.sleep(0.1)
        await session.close()
        return session, calls

    session, calls = asyncio.run(scenario())
    assert session.token.cancelled
    assert not session.loop.running
    assert engine.detect_all_calls == calls
    assert camera.released
    assert not session.locked


def test_render_composes_video_and_panel(tmp_path: Path):
    root = _known_faces(tmp_path, ["user1"])
    engine = FakeEngine(default=[face(DESCRIPTORS["user1"])], reference_pixels=_pixels(["user1"]))

    async def scenario():
        async with _session(engine, FakeCamera(), root) as session:
            await session.start()
            await session.next_frame()
            before = session.render()
            await session.wait_for_match(timeout=2.0)
            after = session.render()
            return before, after

    before, after = asyncio.run(scenario())
    assert before.shape[1] == after.shape[1] == 320
    # match card adds panel rows under the video
    assert after.shape[0] > before.shape[0] > 240
