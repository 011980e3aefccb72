import os
from pathlib import Path

# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent

# Database
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR}/bolao.db")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Identity: the caller's user id travels in this header, is_admin is read from the user row
USER_ID_HEADER = "X-User-Id"

# Prediction lock window around kickoff (minutes)
LOCK_MINUTES_BEFORE = int(os.getenv("BLOQUEIO_PALPITE_MINUTOS", "15"))
LOCK_MINUTES_AFTER = int(os.getenv("LOCK_MINUTES_AFTER", "240"))

# Default pool point values
DEFAULT_POINTS = {
    "exact_score": 25,
    "winner_score": 18,
    "goal_difference": 15,
    "loser_score": 12,
    "winner": 10,
    "draw": 15,
    "exact_draw": 25,
    "penalties": 1,
    "champion": 20,
}
