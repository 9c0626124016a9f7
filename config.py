import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

# Logging level (DEBUG/INFO/WARNING/ERROR/CRITICAL)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Path to the medicine vocabulary + reference info file
MEDICINE_DATA_FILE = os.getenv("MEDICINE_DATA_FILE", str(BASE_DIR / "model_assets" / "medicine_info.json"))

# Tokens shorter than this are dropped before matching (3-4 is sensible)
MIN_TOKEN_LENGTH = int(os.getenv("MIN_TOKEN_LENGTH", "3"))

# Substring tier only applies to tokens at least this long
SUBSTRING_MIN_TOKEN_LENGTH = int(os.getenv("SUBSTRING_MIN_TOKEN_LENGTH", "5"))

# Edit distance thresholds: keys up to SHORT_KEY_MAX_LENGTH chars get the short threshold
SHORT_KEY_MAX_LENGTH = int(os.getenv("SHORT_KEY_MAX_LENGTH", "5"))
SHORT_KEY_MAX_DISTANCE = int(os.getenv("SHORT_KEY_MAX_DISTANCE", "1"))
LONG_KEY_MAX_DISTANCE = int(os.getenv("LONG_KEY_MAX_DISTANCE", "2"))

# Overlay boxes never shrink below this many display pixels
MIN_BOX_SIZE = float(os.getenv("MIN_BOX_SIZE", "2"))

# CSS class put on the <mark> wrapping detected medicine names
HIGHLIGHT_CLASS = os.getenv("HIGHLIGHT_CLASS", "ocr-mark")
