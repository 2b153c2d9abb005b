import os
from dotenv import load_dotenv

load_dotenv() # Load env vars from .env

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./review_scheduler.db")

# Default activity window. A stored "activity_window" config row overrides it.
ACTIVITY_WINDOW_START = os.environ.get("ACTIVITY_WINDOW_START", "08:00")
ACTIVITY_WINDOW_END = os.environ.get("ACTIVITY_WINDOW_END", "18:00")
ACTIVE_DAYS = [d.strip().upper() for d in os.environ.get("ACTIVE_DAYS", "MON,TUE,WED,THU,FRI,SAT,SUN").split(",") if d.strip()]

DEFAULT_SLOT_DURATION = int(os.environ.get("DEFAULT_SLOT_DURATION", 10))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
PORT = int(os.environ.get("PORT", 8765))
