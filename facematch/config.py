# Font candidates (macOS/Windows/Linux). Emoji and non-latin profile names need a unicode-capable font
# ahead of the plain latin ones.
FONT_LIST = [
    # macOS
    "/System/Library/Fonts/Apple Color Emoji.ttc",
    "/System/Library/Fonts/STHeiti Medium.ttc",
    "/Library/Fonts/Arial Unicode.ttf",
    # Windows
    "C:\\Windows\\Fonts\\seguiemj.ttf",
    "C:\\Windows\\Fonts\\msyh.ttc",
    "C:\\Windows\\Fonts\\arialuni.ttf",
    # Linux
    "/usr/share/fonts/opentype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/noto/NotoSansCJK-Regular.ttc",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
]

# InsightFace bundle: SCRFD detector + 106-point landmarks + ArcFace recognition.
MODEL_BUNDLE = "buffalo_l"
MODEL_ROOT = "~/.insightface"
MODEL_MODULES = ("detection", "landmark_2d_106", "recognition")
# Small detector input keeps each tick cheap on CPU.
DET_SIZE = 320

KNOWN_FACES_ROOT = "known_faces"
REFERENCE_LABELS = ("user1", "user2", "user3", "user4")
REFERENCE_SUFFIX = ".jpeg"

UNKNOWN_LABEL = "unknown"
# Euclidean distance on L2-normalized ArcFace embeddings; 1.1 ~= cosine similarity 0.4.
DISTANCE_THRESHOLD = 1.1

MATCH_INTERVAL_SEC = 2.0
DISPLAY_SIZE = (320, 240)

DEFAULT_PROFILES = {
    "user1": {"name": "Bebooo Love You", "email": "john@example.com", "id": "1"},
    "user2": {"name": "Deepak", "email": "jane@example.com", "id": "2"},
    "user3": {"name": "Sameer Seo specialist", "email": "sameer@example.com", "id": "3"},
    "user4": {"name": "Manager h kya", "email": "manager@example.com", "id": "4"},
}
