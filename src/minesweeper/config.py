import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


HOST = os.getenv("MINESWEEPER_HOST", "0.0.0.0")
DEFAULT_PORT = int(os.getenv("MINESWEEPER_PORT", "4444"))
MAXIMUM_PORT = 65535
DEFAULT_SIZE = int(os.getenv("MINESWEEPER_SIZE", "10"))
DEBUG = _env_flag("MINESWEEPER_DEBUG")
LOG_LEVEL = os.getenv("MINESWEEPER_LOG_LEVEL", "INFO").upper()
