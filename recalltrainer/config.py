import os

from .version import APP_NAME, APP_VERSION

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.dirname(BASE_DIR)

DATA_DIR = os.path.join(PROJECT_ROOT, "data")
EXPORT_DIR = os.path.join(DATA_DIR, "exports")

DEFAULT_DB_PATH = os.path.join(DATA_DIR, "recall.db")

# stories.json: data/ first, then the project root
DEFAULT_STORIES_PATH = os.path.join(DATA_DIR, "stories.json")
FALLBACK_STORIES_PATH = os.path.join(PROJECT_ROOT, "stories.json")

DIFFICULTIES = ("simple", "medium", "hard")

# Playback
DEFAULT_WORD_DELAY_MS = 1000
MIN_WORD_DELAY_MS = 100    # UI slider range only
MAX_WORD_DELAY_MS = 5000
SENTENCE_PREFIX = "Next sentence."

# Notes
DEFAULT_NOTE_CATEGORIES = ["Descriptors"]

LOG_LEVEL_ENV = "RECALLTRAINER_LOG_LEVEL"
