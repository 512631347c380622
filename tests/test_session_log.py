"""
Tests for the session log.
"""

import re
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from gradecore.session_log import SessionLog


class TestSessionLog:
    """Test session log entries."""

    def test_entry_format(self):
        session_log = SessionLog()

        session_log.log("GRADING_START", "Question: two-sum")

        assert re.fullmatch(
            r"\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] - GRADING_START - Question: two-sum",
            session_log.entries[0]
        )

    def test_entry_without_details(self):
        session_log = SessionLog()

        session_log("SCORE")

        assert session_log.entries[0].endswith("] - SCORE")

    def test_events(self):
        session_log = SessionLog()

        session_log("GRADING_START", "a - b")
        session_log("GRADING_FINISH")

        assert session_log.events() == ["GRADING_START", "GRADING_FINISH"]

    def test_appends_to_file(self, tmp_path):
        path = tmp_path / "session.log"
        path.write_text("[earlier] - OLD\n")

        session_log = SessionLog(path)
        session_log("CASE_RESULT", "Case: 0")

        lines = path.read_text().splitlines()
        assert lines[0] == "[earlier] - OLD"
        assert lines[1].endswith(" - CASE_RESULT - Case: 0")
