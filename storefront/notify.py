# storefront/notify.py
import logging
from typing import List, Tuple

logger = logging.getLogger(__name__)


class Notifier:
    """Collects user-facing messages. The default just logs them; a UI can subclass and display."""

    def __init__(self):
        self.messages: List[Tuple[str, str]] = []

    def success(self, message: str):
        logger.info(message)
        self.messages.append(("success", message))

    def error(self, message: str):
        logger.warning(message)
        self.messages.append(("error", message))

    def errors(self) -> List[str]:
        return [text for level, text in self.messages if level == "error"]
