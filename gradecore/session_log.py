"""
Session log for grading events.

A SessionLog instance is a session_logger: call it with (event, details).
Entries are timestamped and kept in memory, and appended to a file when a
path is given.
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union


class SessionLog:
    """Append-only log of grading events."""

    def __init__(self, log_path: Optional[Union[str, Path]] = None):
        self.log_path = Path(log_path) if log_path else None
        self.entries: List[str] = []

    def log(self, event: str, details: str = ""):
        """Append an entry to the session log."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        log_entry = f"[{timestamp}] - {event}"
        if details:
            log_entry += f" - {details}"

        self.entries.append(log_entry)

        if self.log_path:
            with open(self.log_path, 'a', encoding='utf-8') as f:
                f.write(log_entry + "\n")

    __call__ = log

    def events(self) -> List[str]:
        """Event names in the order they were logged."""
        return [entry.split(" - ")[1] for entry in self.entries]
