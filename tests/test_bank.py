"""
Tests for the bank module.

Tests question bank loading including:
- Key-file and password encryption
- Wrong keys, missing passwords and plain JSON banks
- Schema validation errors and warnings
- The bundled sample bank
"""

import json
import pytest
from pathlib import Path

from cryptography.fernet import Fernet

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from gradecore.bank import (
    SALT_PREFIX,
    encrypt_bank_bytes,
    load_bank_bytes,
    validate_bank_dict,
)
from gradecore.errors import BankError


SAMPLE_BANK = Path(__file__).parent.parent / "banks" / "sample_bank.json"


def _bank_dict():
    return {
        "group": "G1",
        "version": "2",
        "questions": [
            {
                "id": "add",
                "title": "Add",
                "difficulty": "easy",
                "entry_point": "add",
                "time_limit_ms": 1000,
                "test_cases": [{"input": "a = 1, b = 2", "expected_output": "3"}]
            }
        ],
        "quiz": {"passing_score": 60, "questions": [{"id": "q1", "correct_answer": "A"}]}
    }


@pytest.fixture
def plaintext():
    return json.dumps(_bank_dict()).encode()


class TestEncryption:
    """Test encrypted bank round trips."""

    def test_key_encrypted_bank(self, plaintext):
        key = Fernet.generate_key()

        bank = load_bank_bytes(encrypt_bank_bytes(plaintext, key=key), key=key)

        assert bank.group == "G1"
        assert bank.get_question("add").entry_point == "add"
        assert bank.passing_score == 60

    def test_key_file_trailing_newline(self, plaintext):
        key = Fernet.generate_key()

        bank = load_bank_bytes(encrypt_bank_bytes(plaintext, key=key), key=key + b"\n")

        assert bank.version == "2"

    def test_password_encrypted_bank(self, plaintext):
        data = encrypt_bank_bytes(plaintext, password="hunter2")

        assert data.startswith(SALT_PREFIX)
        bank = load_bank_bytes(data, password="hunter2")
        assert len(bank.questions) == 1

    def test_wrong_key(self, plaintext):
        data = encrypt_bank_bytes(plaintext, key=Fernet.generate_key())

        with pytest.raises(BankError, match="Decryption failed"):
            load_bank_bytes(data, key=Fernet.generate_key())

    def test_wrong_password(self, plaintext):
        data = encrypt_bank_bytes(plaintext, password="right")

        with pytest.raises(BankError, match="Decryption failed"):
            load_bank_bytes(data, password="wrong")

    def test_password_bank_without_password(self, plaintext):
        data = encrypt_bank_bytes(plaintext, password="pw")

        with pytest.raises(BankError, match="encrypted with a password"):
            load_bank_bytes(data, key=Fernet.generate_key())

    def test_malformed_key(self, plaintext):
        data = encrypt_bank_bytes(plaintext, key=Fernet.generate_key())

        with pytest.raises(BankError, match="Invalid key"):
            load_bank_bytes(data, key=b"not-a-key")

    def test_encrypt_needs_key_or_password(self, plaintext):
        with pytest.raises(BankError):
            encrypt_bank_bytes(plaintext)


class TestLoadBankBytes:
    """Test plain JSON banks and bad content."""

    def test_plain_json_needs_no_key(self, plaintext):
        bank = load_bank_bytes(plaintext)

        assert bank.get_all_questions().keys() == {"add"}
        assert bank.quiz_questions[0].correct_answer == "A"

    def test_invalid_json(self):
        with pytest.raises(BankError, match="Invalid JSON"):
            load_bank_bytes(b"{not json")

    def test_invalid_schema(self):
        with pytest.raises(BankError, match="Missing required field"):
            load_bank_bytes(b'{"group": "G1"}')

    def test_unknown_question(self, plaintext):
        bank = load_bank_bytes(plaintext)

        with pytest.raises(BankError, match="not found"):
            bank.get_question("missing")

    def test_sample_bank(self):
        bank = load_bank_bytes(SAMPLE_BANK.read_bytes())

        assert [q.id for q in bank.questions] == ["two-sum", "reverse-string", "palindrome-number"]
        assert len(bank.quiz_questions) == 3
        assert bank.passing_score == 70
        assert bank.get_question("two-sum").test_cases[2].is_hidden is True


class TestValidateBankDict:
    """Test schema validation."""

    def test_valid_bank(self):
        errors, warnings = validate_bank_dict(_bank_dict())

        assert errors == []
        assert warnings == []

    def test_missing_top_level_fields(self):
        errors, _ = validate_bank_dict({"questions": []})

        assert "Missing required field: group" in errors
        assert "Missing required field: version" in errors

    def test_not_an_object(self):
        errors, _ = validate_bank_dict([])

        assert errors == ["Bank must be a JSON object"]

    def test_duplicate_ids(self):
        bank = _bank_dict()
        bank["questions"].append(dict(bank["questions"][0]))

        errors, _ = validate_bank_dict(bank)

        assert any("Duplicate question id" in e for e in errors)

    def test_no_test_cases(self):
        bank = _bank_dict()
        bank["questions"][0]["test_cases"] = []

        errors, _ = validate_bank_dict(bank)

        assert any("No test cases defined" in e for e in errors)

    def test_test_case_without_expected_output(self):
        bank = _bank_dict()
        bank["questions"][0]["test_cases"] = [{"input": "1"}]

        errors, _ = validate_bank_dict(bank)

        assert any("Missing input/expected output" in e for e in errors)

    def test_bad_difficulty(self):
        bank = _bank_dict()
        bank["questions"][0]["difficulty"] = "extreme"

        errors, _ = validate_bank_dict(bank)

        assert any("Invalid difficulty" in e for e in errors)

    def test_bad_passing_score(self):
        bank = _bank_dict()
        bank["quiz"]["passing_score"] = 150

        errors, _ = validate_bank_dict(bank)

        assert "quiz.passing_score: must be between 0 and 100" in errors

    def test_warnings(self):
        bank = _bank_dict()
        question = bank["questions"][0]
        del question["entry_point"]
        del question["time_limit_ms"]
        question["test_cases"][0]["is_hidden"] = True

        errors, warnings = validate_bank_dict(bank)

        assert errors == []
        assert len(warnings) == 3
