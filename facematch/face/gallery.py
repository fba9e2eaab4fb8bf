from __future__ import annotations

import asyncio

from pathlib import Path
from typing import List, Optional, Sequence

import cv2

from facematch.config import REFERENCE_SUFFIX
from facematch.errors import ReferenceImageError
from facematch.face.types import LabeledDescriptor
from facematch.utils.log import get_logger

logger = get_logger(__name__)


def reference_image_path(known_faces_root, label: str) -> Path:
    return Path(known_faces_root) / f"{label}{REFERENCE_SUFFIX}"


def read_reference_image(path: Path):
    image = cv2.imread(str(path))
    if image is None:
        raise ReferenceImageError(f"cannot read image: {path}")
    return image


def load_labeled_descriptor(engine, known_faces_root, label: str) -> Optional[LabeledDescriptor]:
    """Compute the reference descriptor for one label; None when the label has to be skipped."""
    path = reference_image_path(known_faces_root, label)
    try:
        image = read_reference_image(path)
        detection = engine.detect_single(image)
    except Exception as e:
        logger.error(f"❌ Error loading image {path.name}: {e}")
        return None

    if detection is None:
        logger.warning(f"❌ No face found in image: {path.name}")
        return None

    logger.info(f"  {path.name}: score {detection.score:.3f}")
    return LabeledDescriptor(label, detection.descriptor)


async def build_reference_set(engine, known_faces_root, labels: Sequence[str]) -> List[LabeledDescriptor]:
    """Build one labeled descriptor per label, concurrently, keeping label order.

    A label that fails never aborts the others; it is simply left out.
    """
    logger.info(f"Building reference set from {known_faces_root}: {list(labels)}")
    results = await asyncio.gather(
        *(asyncio.to_thread(load_labeled_descriptor, engine, known_faces_root, label) for label in labels)
    )
    references = [r for r in results if r is not None]
    logger.info(f"Reference set: {len(references)}/{len(labels)} labels ({[r.label for r in references]})")
    return references
