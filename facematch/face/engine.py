import io

from contextlib import redirect_stderr, redirect_stdout
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import torch

from insightface.app import FaceAnalysis

from facematch.config import DET_SIZE, MODEL_BUNDLE, MODEL_MODULES, MODEL_ROOT
from facematch.errors import ModelLoadError
from facematch.face.types import Box, FaceDetection
from facematch.utils.log import get_logger, suppress_fds
from facematch.utils.math import l2_normalize

logger = get_logger(__name__)

# In-process model cache: a second session (or test) with the same bundle skips the onnx session setup.
_FACEAPP_CACHE: Dict[Tuple, FaceAnalysis] = {}


@dataclass
class EngineConfig:
    bundle: str = MODEL_BUNDLE
    model_root: str = MODEL_ROOT
    modules: Tuple[str, ...] = MODEL_MODULES
    det_size: int = DET_SIZE
    # 'auto' / 'cpu' / 'gpu'
    device: str = "auto"


def _resolve_device(device: str) -> str:
    if device != "auto":
        return device
    try:
        return "gpu" if torch.cuda.is_available() else "cpu"
    except Exception:
        return "cpu"


class InsightFaceEngine:
    """Detection, landmarks and descriptors backed by an InsightFace bundle.

    Anything with the same three methods (`load`, `detect_all`, `detect_single`)
    can stand in for it, which is how the session is tested without models.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.ctx_id = -1  # -1 = CPU, 0 = first GPU
        self._app: Optional[FaceAnalysis] = None

    @property
    def loaded(self) -> bool:
        return self._app is not None

    def load(self) -> None:
        """Load the detector, landmark and recognition models.

        Raises:
            ModelLoadError: bundle missing, onnx failure, or a required module absent.
        """
        cfg = self.config
        device = _resolve_device(cfg.device)
        if device == "gpu":
            providers = ["CUDAExecutionProvider", "CPUExecutionProvider"]
            self.ctx_id = 0
        else:
            providers = ["CPUExecutionProvider"]
            self.ctx_id = -1

        root = str(Path(cfg.model_root).expanduser())
        key = (str(cfg.bundle), root, tuple(providers), int(self.ctx_id), int(cfg.det_size))
        cached = _FACEAPP_CACHE.get(key)
        if cached is not None:
            self._app = cached
            logger.info(f"✅ Models loaded (cached): {cfg.bundle}")
            return

        try:
            with suppress_fds():
                app = FaceAnalysis(
                    name=cfg.bundle,
                    root=root,
                    providers=providers,
                    allowed_modules=list(cfg.modules),
                )
            buf = io.StringIO()
            with redirect_stdout(buf), redirect_stderr(buf):
                app.prepare(ctx_id=self.ctx_id, det_size=(int(cfg.det_size), int(cfg.det_size)))
        except Exception as e:
            logger.error(f"❌ Model loading failed ({cfg.bundle} @ {root}): {e}")
            raise ModelLoadError(f"failed to load model bundle '{cfg.bundle}' from {root}") from e

        loaded = set(getattr(app, "models", {}).keys())
        missing = [m for m in cfg.modules if m not in loaded]
        if missing:
            logger.error(f"❌ Model bundle {cfg.bundle} is missing modules: {missing}")
            raise ModelLoadError(f"model bundle '{cfg.bundle}' is missing modules: {', '.join(missing)}")

        self._app = app
        _FACEAPP_CACHE[key] = app
        logger.info(f"✅ Models loaded: {cfg.bundle} ({', '.join(cfg.modules)}) on {device}")

    def _to_detection(self, face, image_shape) -> Optional[FaceDetection]:
        embedding = getattr(face, "embedding", None)
        if embedding is None:
            return None
        h, w = image_shape[:2]
        x1, y1, x2, y2 = [float(v) for v in face.bbox[:4]]
        box = Box.from_xyxy(x1, y1, x2, y2).clip(w, h)

        landmarks = getattr(face, "landmark_2d_106", None)
        if landmarks is None:
            landmarks = getattr(face, "kps", None)
        if landmarks is not None:
            landmarks = np.asarray(landmarks, dtype=np.float32)

        return FaceDetection(
            box=box,
            descriptor=l2_normalize(np.asarray(embedding, dtype=np.float32).reshape(-1)),
            score=float(getattr(face, "det_score", 1.0)),
            landmarks=landmarks,
        )

    def detect_all(self, image: np.ndarray) -> List[FaceDetection]:
        """Detect every face in a BGR image and compute its descriptor."""
        if self._app is None:
            raise ModelLoadError("models are not loaded; call load() first")
        if image is None or image.size == 0:
            return []
        faces = self._app.get(image) or []
        out: List[FaceDetection] = []
        for face in faces:
            det = self._to_detection(face, image.shape)
            if det is not None:
                out.append(det)
        return out

    def detect_single(self, image: np.ndarray) -> Optional[FaceDetection]:
        """Return the highest-scoring face, or None when there is no face."""
        dets = self.detect_all(image)
        if not dets:
            return None
        return max(dets, key=lambda d: d.score)
