import os
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from dotenv import load_dotenv

from .models import TrackedPost

# Load environment variables
load_dotenv()

# --- Configuration ---
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "3210"))
METRICS_FILE = os.getenv("METRICS_FILE", "metrics.json")
FB_STORAGE_STATE: Optional[str] = os.getenv("FB_STORAGE_STATE") or None
WEBHOOK_URL = os.getenv("WEBHOOK_URL", "")
SETTLE_SECONDS = float(os.getenv("SETTLE_SECONDS", "5"))
DEBUG_DIR = os.getenv("DEBUG_DIR", ".")

# --- Tracked reels ---
TRACKED_POSTS: Tuple[TrackedPost, ...] = (
    TrackedPost(id=1, title="lycée agricole d'Yvetot", url="https://www.facebook.com/reel/1167958628558423"),
    TrackedPost(id=2, title="lycée La Salle St Antoine", url="https://www.facebook.com/reel/1406510241168380"),
    TrackedPost(id=3, title="Lycée Nature (85)", url="https://www.facebook.com/reel/1201528905398420"),
    TrackedPost(id=4, title="l'Agricampus de Laval", url="https://www.facebook.com/reel/1704222193876563"),
    TrackedPost(id=5, title="lycée de Melle (79)", url="https://www.facebook.com/reel/865110959853994"),
)

# Last-resort like counts, used only when neither this run nor the previous one found a value.
BASELINE_LIKES: Mapping[str, int] = MappingProxyType({
    "https://www.facebook.com/reel/1167958628558423": 227,
    "https://www.facebook.com/reel/1406510241168380": 201,
    "https://www.facebook.com/reel/1201528905398420": 453,
    "https://www.facebook.com/reel/1704222193876563": 152,
    "https://www.facebook.com/reel/865110959853994": 272,
})
