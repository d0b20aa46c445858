import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[2] / ".env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "8000"))

# Customer -> admin socket limiter (sliding window)
RATE_LIMIT_MESSAGES = int(os.getenv("CHAT_RATE_LIMIT_MESSAGES", "20"))
RATE_LIMIT_WINDOW_SEC = float(os.getenv("CHAT_RATE_LIMIT_WINDOW_SEC", "60"))

# Admin HTTP message limiter (fixed window, redis backed)
ADMIN_RATE_LIMIT_ENABLED = os.getenv("ADMIN_RATE_LIMIT_ENABLED", "") == "1"
ADMIN_RATE_LIMIT_MESSAGES = int(os.getenv("ADMIN_RATE_LIMIT_MESSAGES", "30"))
ADMIN_RATE_LIMIT_WINDOW_SEC = int(os.getenv("ADMIN_RATE_LIMIT_WINDOW_SEC", "60"))
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))

HEARTBEAT_INTERVAL_SEC = float(os.getenv("CHAT_HEARTBEAT_INTERVAL_SEC", "30"))
# Missing ws pong within this many seconds closes the socket
HEARTBEAT_TIMEOUT_SEC = float(os.getenv("CHAT_HEARTBEAT_TIMEOUT_SEC", str(HEARTBEAT_INTERVAL_SEC)))
HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", "500"))
ADMIN_DISPLAY_NAME = os.getenv("CHAT_ADMIN_DISPLAY_NAME", "Admin")
USER_DISPLAY_NAME = "User"

UPLOAD_DIR = Path(os.getenv("CHAT_UPLOAD_DIR", "./public/uploads"))
UPLOAD_URL_PREFIX = "/uploads"
UPLOAD_MAX_BYTES = int(os.getenv("CHAT_UPLOAD_MAX_BYTES", str(200 * 1024 * 1024)))
UPLOAD_MIME_PREFIXES = ("image/", "video/")

SENDER_TYPES = ("user", "admin")
PRIORITIES = ("high", "medium", "low")
DEFAULT_PRIORITY = "medium"
CONVERSATION_FILTERS = ("unread", "today", "yesterday", *PRIORITIES)
