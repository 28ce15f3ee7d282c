import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    "success": logging.INFO,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    level: str
    message: str
    description: Optional[str] = None

    def to_dict(self):
        return {"level": self.level, "message": self.message, "description": self.description}


class Notifier:
    """
    Toast model shared by the map view and the panels. Every message is kept
    in ``history`` (the web client drains it) and logged.
    """

    def __init__(self):
        self.history = []

    def _push(self, level, message, description=None):
        note = Notification(level, message, description)
        self.history.append(note)
        logger.log(_LOG_LEVELS[level], "%s%s", message, f" ({description})" if description else "")
        return note

    def success(self, message, description=None):
        return self._push("success", message, description)

    def info(self, message, description=None):
        return self._push("info", message, description)

    def warning(self, message, description=None):
        return self._push("warning", message, description)

    def error(self, message, description=None):
        return self._push("error", message, description)

    def of_level(self, level):
        return [n for n in self.history if n.level == level]

    def drain(self):
        notes, self.history = self.history, []
        return notes
