from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np


def serialize_detection(det, match=None, frame_size: Optional[Tuple[int, int]] = None) -> Dict:
    """Serialize a FaceDetection (plus its FaceMatch) into a JSON-safe dict.

    frame_size: (w, h); adds normalized bbox coords when given.
    """
    x1, y1, x2, y2 = det.box.xyxy
    out = {
        "bbox": [x1, y1, x2, y2],
        "center": [int((x1 + x2) / 2), int((y1 + y2) / 2)],
        "score": round(float(det.score), 4),
    }
    try:
        out["descriptor_dim"] = int(np.asarray(det.descriptor).reshape(-1).shape[0])
        out["descriptor_norm"] = round(float(np.linalg.norm(det.descriptor)), 4)
    except Exception:
        out["descriptor_dim"] = None
        out["descriptor_norm"] = None

    if match is not None:
        out["label"] = str(match.label)
        out["distance"] = round(float(match.distance), 4)

    if frame_size is not None:
        w, h = frame_size
        if w > 0 and h > 0:
            out["bbox_norm"] = [round(x1 / w, 4), round(y1 / h, 4), round(x2 / w, 4), round(y2 / h, 4)]
    return out


def serialize_tick(detections: Sequence, matches: Sequence, frame_size=None) -> List[Dict]:
    return [serialize_detection(d, m, frame_size) for d, m in zip(detections, matches)]
