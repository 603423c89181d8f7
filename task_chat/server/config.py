"""Server configuration values."""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent
DATABASE_URL = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'task_chat.db'}")
TOKEN_EXPIRY_MINUTES = int(os.getenv("TOKEN_EXPIRY_MINUTES", 60 * 24))
MAX_FAILED_LOGINS = int(os.getenv("MAX_FAILED_LOGINS", 5))
LOCKOUT_MINUTES = int(os.getenv("LOCKOUT_MINUTES", 10))
MESSAGE_EDIT_WINDOW_MINUTES = int(os.getenv("MESSAGE_EDIT_WINDOW_MINUTES", 5))

# Live chat
CHAT_HISTORY_LIMIT = int(os.getenv("CHAT_HISTORY_LIMIT", 500))
CHAT_IDENTITY_MODE = os.getenv("CHAT_IDENTITY_MODE", "handshake")
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "*")
SOCKETIO_PATH = os.getenv("SOCKETIO_PATH", "socket.io")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 3001))

LOG_FILE = Path(os.getenv("LOG_FILE", BASE_DIR / "server.log"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
