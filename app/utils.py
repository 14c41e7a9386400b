"""Debug log capture for the First 48 UI."""

import logging
import re
from collections import deque
from typing import Deque, Optional, Tuple

MAX_UI_LOG_LINES = 500

# Only the game's own loggers feed the debug panel
CAPTURED_LOGGERS = ("game", "services", "app")

_TAG = re.compile(r"^\[([A-Z]+)\]")

# (tag, formatted line)
UI_LOG_BUFFER: Deque[Tuple[Optional[str], str]] = deque(maxlen=MAX_UI_LOG_LINES)


class UILogHandler(logging.Handler):
    """Keeps recent game log lines, remembering each line's [TAG]."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.name.split(".")[0] in CAPTURED_LOGGERS

    def emit(self, record: logging.LogRecord) -> None:
        message = record.getMessage()
        match = _TAG.match(message)
        try:
            line = self.format(record)
        except (TypeError, ValueError):
            line = message
        UI_LOG_BUFFER.append((match.group(1) if match else None, line))


def setup_ui_logging() -> None:
    """Attach the handler to the root logger. Safe to call twice."""
    root = logging.getLogger()
    if any(isinstance(h, UILogHandler) for h in root.handlers):
        return
    handler = UILogHandler(level=logging.INFO)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s", "%H:%M:%S"))
    root.addHandler(handler)


def get_ui_logs(tag: str = "") -> str:
    """Recent log lines, optionally only those tagged e.g. ORCH or CONVO."""
    wanted = (tag or "").strip().strip("[]").upper()
    lines = [line for line_tag, line in UI_LOG_BUFFER if not wanted or line_tag == wanted]
    if not lines:
        return "Nothing logged yet." if not wanted else f"No [{wanted}] lines yet."
    return "\n".join(lines)
