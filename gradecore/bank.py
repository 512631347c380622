"""
Question banks: coding questions plus an optional declarative quiz.

A bank is JSON::

    {"group": ..., "version": ...,
     "questions": [<Question>...],
     "quiz": {"passing_score": 70, "questions": [<QuizQuestion>...]}}

Banks are distributed encrypted with Fernet, either with a key file or with a
password (the file then starts with b'SALT' and a 16-byte salt).
"""

import base64
import json
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import BankError
from .models import DIFFICULTIES, Question, QuizQuestion


SALT_PREFIX = b'SALT'
SALT_LENGTH = 16
KDF_ITERATIONS = 480000  # OWASP recommendation for 2024


def derive_key_from_password(password: str, salt: bytes) -> bytes:
    """Derive a Fernet key from a password using PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=KDF_ITERATIONS,
    )
    key_material = kdf.derive(password.encode())
    return base64.urlsafe_b64encode(key_material)


@dataclass
class QuestionBank:
    """Represents the entire question bank."""
    group: str
    version: str
    questions: List[Question]
    quiz_questions: List[QuizQuestion] = field(default_factory=list)
    passing_score: Optional[float] = None

    @staticmethod
    def from_dict(data: dict) -> 'QuestionBank':
        """Create a QuestionBank object from a dictionary."""
        quiz = data.get('quiz') or {}
        return QuestionBank(
            group=data.get('group', ''),
            version=str(data.get('version', '')),
            questions=[Question.from_dict(q) for q in data.get('questions', [])],
            quiz_questions=[QuizQuestion.from_dict(q) for q in quiz.get('questions', [])],
            passing_score=quiz.get('passing_score')
        )

    def get_all_questions(self) -> Dict[str, Question]:
        """Return a dictionary mapping question IDs to Question objects."""
        return {q.id: q for q in self.questions}

    def get_question(self, question_id: str) -> Question:
        try:
            return self.get_all_questions()[question_id]
        except KeyError:
            raise BankError(f"Question '{question_id}' not found in bank {self.group}")


def encrypt_bank_bytes(plaintext: bytes, key: Optional[bytes] = None, password: Optional[str] = None) -> bytes:
    """Encrypt bank JSON with a key, or with a password and a fresh salt."""
    if password is not None:
        salt = os.urandom(SALT_LENGTH)
        token = Fernet(derive_key_from_password(password, salt)).encrypt(plaintext)
        return SALT_PREFIX + salt + token
    if key is None:
        raise BankError("Either a key or a password is required to encrypt a bank")
    return Fernet(key).encrypt(plaintext)


def decrypt_bank_bytes(data: bytes, key: Optional[bytes] = None, password: Optional[str] = None) -> bytes:
    """Decrypt an encrypted bank; raises BankError on a wrong key or password."""
    is_password_based = data.startswith(SALT_PREFIX)

    if is_password_based:
        if password is None:
            raise BankError("This bank was encrypted with a password")
        salt = data[len(SALT_PREFIX):len(SALT_PREFIX) + SALT_LENGTH]
        token = data[len(SALT_PREFIX) + SALT_LENGTH:]
        fernet_key = derive_key_from_password(password, salt)
    else:
        if key is None:
            raise BankError("This bank was encrypted with a key file")
        token = data
        fernet_key = key.strip()

    try:
        return Fernet(fernet_key).decrypt(token)
    except InvalidToken:
        raise BankError("Decryption failed: Invalid key/password or corrupted file")
    except ValueError as e:
        raise BankError(f"Invalid key: {e}")


def load_bank_bytes(data: bytes, key: Optional[bytes] = None, password: Optional[str] = None) -> QuestionBank:
    """
    Load a bank from raw bytes.

    Plain JSON is accepted as-is; anything else is decrypted with the key or
    password first.
    """
    stripped = data.lstrip()
    if stripped.startswith(b'{'):
        plaintext = data
    else:
        plaintext = decrypt_bank_bytes(data, key=key, password=password)

    try:
        bank_dict = json.loads(plaintext)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BankError(f"Invalid JSON in bank: {e}")

    errors, _ = validate_bank_dict(bank_dict)
    if errors:
        raise BankError(f"Invalid bank: {errors[0]}")

    try:
        return QuestionBank.from_dict(bank_dict)
    except (KeyError, TypeError, ValueError) as e:
        raise BankError(f"Invalid bank: {e}")


def validate_bank_dict(bank_data: dict) -> Tuple[List[str], List[str]]:
    """
    Check a bank dictionary against the schema.

    Returns:
        Tuple of (errors, warnings)
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not isinstance(bank_data, dict):
        return ["Bank must be a JSON object"], warnings

    for name in ('group', 'version', 'questions'):
        if name not in bank_data:
            errors.append(f"Missing required field: {name}")
    if errors:
        return errors, warnings

    questions = bank_data['questions']
    if not isinstance(questions, list):
        return ["questions: must be a list"], warnings

    seen_ids = set()
    for idx, question in enumerate(questions):
        label = f"questions[{idx + 1}] ({question.get('id', '?') if isinstance(question, dict) else '?'})"
        if not isinstance(question, dict):
            errors.append(f"{label}: must be an object")
            continue

        missing = [f for f in ('id', 'title') if f not in question]
        if missing:
            errors.append(f"{label}: Missing fields: {', '.join(missing)}")
            continue

        if question['id'] in seen_ids:
            errors.append(f"{label}: Duplicate question id")
        seen_ids.add(question['id'])

        if question.get('difficulty', 'easy') not in DIFFICULTIES:
            errors.append(f"{label}: Invalid difficulty: {question.get('difficulty')}")

        tests = question.get('test_cases', question.get('testCases', []))
        if not isinstance(tests, list):
            errors.append(f"{label}: test cases must be a list")
        elif not tests:
            errors.append(f"{label}: No test cases defined")
        else:
            for test_idx, test in enumerate(tests):
                if not isinstance(test, dict) or 'input' not in test or not (
                        'expected_output' in test or 'expectedOutput' in test):
                    errors.append(f"{label} test {test_idx + 1}: Missing input/expected output")
            if all(isinstance(t, dict) and t.get('is_hidden', t.get('isHidden')) for t in tests):
                warnings.append(f"{label}: every test case is hidden")

        time_limit = question.get('time_limit_ms', question.get('timeLimit', 0))
        if not isinstance(time_limit, (int, float)) or time_limit < 0:
            errors.append(f"{label}: time limit must be a non-negative number")
        elif time_limit == 0:
            warnings.append(f"{label}: no time limit, the configured default applies")

        if not question.get('entry_point', question.get('entryPoint')):
            warnings.append(f"{label}: no entry_point, the function name will be guessed")

    quiz = bank_data.get('quiz')
    if quiz is not None:
        if not isinstance(quiz, dict):
            errors.append("quiz: must be an object")
        else:
            passing_score = quiz.get('passing_score')
            if passing_score is not None and not (isinstance(passing_score, (int, float)) and 0 <= passing_score <= 100):
                errors.append("quiz.passing_score: must be between 0 and 100")
            for idx, item in enumerate(quiz.get('questions', [])):
                if not isinstance(item, dict) or 'id' not in item or not (
                        'correct_answer' in item or 'correctAnswer' in item):
                    errors.append(f"quiz.questions[{idx + 1}]: Missing id/correct answer")
                elif not isinstance(item.get('points', 1), (int, float)) or item.get('points', 1) < 0:
                    errors.append(f"quiz.questions[{idx + 1}]: points must be a non-negative number")

    return errors, warnings
