"""Live webcam face matching: open the camera, match against known faces, show the result.

Quit with `q` in the window, or run headless with --exit-on-match / --max-seconds.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time

from pathlib import Path

import cv2

from facematch import config
from facematch.face.matcher import MatcherConfig
from facematch.face.profiles import ProfileBook
from facematch.utils.log import get_logger, setup_logging
from facematch.video.camera import CameraAcquirer
from facematch.video.loop import UNKNOWN_AFTER_LOCK_POLICIES, LoopConfig
from facematch.video.session import FaceMatchSession, SessionConfig

logger = get_logger(__name__)

WINDOW_NAME = "Face Match"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live webcam face matching against known reference photos")
    parser.add_argument("--source", "-s", default="0", help="camera index, video file or stream URL (default 0)")
    parser.add_argument("--known-faces", "-k", default=config.KNOWN_FACES_ROOT, help="directory with {label}.jpeg")
    parser.add_argument(
        "--labels",
        nargs="+",
        default=list(config.REFERENCE_LABELS),
        help="reference labels to load (default: user1 user2 user3 user4)",
    )
    parser.add_argument("--model-root", default=config.MODEL_ROOT, help="InsightFace model root")
    parser.add_argument("--model-bundle", default=config.MODEL_BUNDLE, help="InsightFace bundle name")
    parser.add_argument("--det-size", type=int, default=config.DET_SIZE, help="detector input size")
    parser.add_argument("--device", default="auto", choices=["auto", "cpu", "gpu"], help="compute device")
    parser.add_argument("--interval", "-i", type=float, default=config.MATCH_INTERVAL_SEC, help="polling period (s)")
    parser.add_argument(
        "--threshold", "-t", type=float, default=config.DISTANCE_THRESHOLD, help="a match needs a distance below this"
    )
    parser.add_argument("--display-width", type=int, default=config.DISPLAY_SIZE[0])
    parser.add_argument("--display-height", type=int, default=config.DISPLAY_SIZE[1])
    parser.add_argument("--profiles", "-p", default=None, help="JSON file of {label: {name, email, id}}")
    parser.add_argument(
        "--unknown-after-lock",
        default="keep",
        choices=list(UNKNOWN_AFTER_LOCK_POLICIES),
        help="keep the locked label, or let later unknown faces clear it",
    )
    parser.add_argument("--headless", action="store_true", help="no window; log only")
    parser.add_argument("--exit-on-match", action="store_true", help="stop as soon as a match locks")
    parser.add_argument("--max-seconds", type=float, default=None, help="stop after this many seconds")
    parser.add_argument("--output-json", "-j", default=None, help="write the final outcome to this JSON file")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def session_config_from_args(args: argparse.Namespace) -> SessionConfig:
    return SessionConfig(
        known_faces_root=str(args.known_faces),
        labels=tuple(args.labels),
        loop=LoopConfig(
            interval_sec=float(args.interval),
            display_size=(int(args.display_width), int(args.display_height)),
            unknown_after_lock=str(args.unknown_after_lock),
        ),
        matcher=MatcherConfig(distance_threshold=float(args.threshold)),
    )


def build_session(args: argparse.Namespace) -> FaceMatchSession:
    # Lazy import: keeps InsightFace/torch out of --help and config handling
    from facematch.face.engine import EngineConfig, InsightFaceEngine

    engine = InsightFaceEngine(
        EngineConfig(
            bundle=str(args.model_bundle),
            model_root=str(args.model_root),
            det_size=int(args.det_size),
            device=str(args.device),
        )
    )
    camera = CameraAcquirer(args.source)
    return FaceMatchSession(engine, camera, session_config_from_args(args), ProfileBook.load(args.profiles))


async def run(args: argparse.Namespace, session: FaceMatchSession) -> dict:
    show = not args.headless

    started = time.monotonic()
    async with session:
        if not await session.start():
            return session.outcome()

        while True:
            frame = await session.next_frame()
            if frame is None:
                logger.info("Video stream ended")
                break
            if show:
                cv2.imshow(WINDOW_NAME, session.render())
                key = cv2.waitKey(1) & 0xFF
                if key in (ord("q"), ord("Q")):
                    break
            if args.exit_on_match and session.locked:
                break
            if args.max_seconds is not None and time.monotonic() - started >= float(args.max_seconds):
                logger.info(f"Stopping after {args.max_seconds:.1f}s")
                break
            # let ticks and the reference build run between frames
            await asyncio.sleep(0)

    if show:
        cv2.destroyAllWindows()
    return session.outcome()


def write_outcome(outcome: dict, path: str) -> Path:
    fp = Path(path)
    fp.parent.mkdir(parents=True, exist_ok=True)
    fp.write_text(json.dumps(outcome, ensure_ascii=False, indent=2), encoding="utf-8")
    return fp


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    session = build_session(args)
    outcome = asyncio.run(run(args, session))

    if outcome["matched_label"]:
        logger.info(f"✅ Match: {outcome['matched_label']} {outcome['profile'] or ''}")
    else:
        logger.info("No match")
    if args.output_json:
        fp = write_outcome(outcome, args.output_json)
        logger.info(f"Outcome written to {fp}")
    return 0 if outcome["matched_label"] else 1


if __name__ == "__main__":
    st = time.time()
    code = main()
    logger.info(f"Total time: {time.time() - st:.2f}s")
    sys.exit(code)
