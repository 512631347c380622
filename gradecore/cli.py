"""
Command line front end: grade a solution file or score a quiz answer file
against a question bank.
"""

import argparse
import getpass
import json
import sys
from pathlib import Path
from typing import Optional

from .bank import QuestionBank, load_bank_bytes
from .config_loader import create_sample_config, load_config
from .errors import BankError
from .grader import Grader
from .messages import MESSAGES
from .models import LANGUAGES
from .scoring import apply_passing_score, score_answers
from .session_log import SessionLog


def _msg(key: str, **kwargs) -> str:
    return MESSAGES["en"][key].format(**kwargs)


def _load_bank(args) -> Optional[QuestionBank]:
    key = None
    password = None
    try:
        if args.key_file:
            with open(args.key_file, 'rb') as f:
                key = f.read()
        elif args.password:
            password = getpass.getpass("Enter bank password: ")

        with open(args.bank, 'rb') as f:
            return load_bank_bytes(f.read(), key=key, password=password)
    except FileNotFoundError as e:
        print(f"[ERROR] File not found: {e.filename}", file=sys.stderr)
    except BankError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
    return None


def cmd_grade(args) -> int:
    config = load_config(Path(args.config) if args.config else None)
    bank = _load_bank(args)
    if bank is None:
        return 1

    try:
        question = bank.get_question(args.question)
    except BankError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    code_path = Path(args.code)
    if not code_path.exists():
        print(f"[ERROR] File '{code_path}' not found", file=sys.stderr)
        return 1
    code = code_path.read_text(encoding='utf-8')

    session_log = SessionLog(args.log)
    grader = Grader(config, session_logger=session_log)
    result = grader.grade_submission(question, code, args.language)
    print(grader.format_test_results(result, show_details=args.details))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.success else 1


def cmd_score(args) -> int:
    config = load_config(Path(args.config) if args.config else None)
    bank = _load_bank(args)
    if bank is None:
        return 1

    try:
        with open(args.answers, 'r', encoding='utf-8') as f:
            answers = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"[ERROR] Could not read answers: {e}", file=sys.stderr)
        return 1
    if not isinstance(answers, dict):
        print("[ERROR] Answers file must be a JSON object mapping question id to answer", file=sys.stderr)
        return 1

    session_log = SessionLog(args.log)
    passing_score = bank.passing_score if bank.passing_score is not None else config.passing_score
    result = apply_passing_score(score_answers(bank.quiz_questions, answers), passing_score)
    session_log("SCORE", f"Bank: {bank.group}, Score: {result.score}/{result.total_points}, {result.percentage}%")

    print(_msg("score_summary", score=result.score, total_points=result.total_points, percentage=result.percentage))
    key = "score_passed" if result.passed else "score_failed"
    print(_msg(key, passing_score=passing_score))
    return 0 if result.passed else 1


def cmd_sample_config(args) -> int:
    create_sample_config(Path(args.out))
    return 0


def _add_bank_arguments(parser: argparse.ArgumentParser):
    parser.add_argument("--bank", required=True, help="Question bank file (.json or encrypted .enc)")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--key-file", help="Key file for key-encrypted banks")
    group.add_argument("--password", action="store_true", help="Prompt for the password of a password-encrypted bank")
    parser.add_argument("--config", help="Grader configuration file (default: ./grader_config.json)")
    parser.add_argument("--log", help="Append session events to this file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gradecore",
        description="Grade candidate code and quiz answers against a question bank.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gradecore grade --bank bank.json --question two-sum --code solution.py --details
  gradecore score --bank bank.enc --key-file GROUP1.key --answers answers.json
  gradecore sample-config --out grader_config.json
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    grade = subparsers.add_parser("grade", help="Run a solution against a question's test cases")
    _add_bank_arguments(grade)
    grade.add_argument("--question", required=True, help="Question id")
    grade.add_argument("--code", required=True, help="Solution source file")
    grade.add_argument("--language", choices=LANGUAGES, default="python", help="Solution language (default: python)")
    grade.add_argument("--details", action="store_true", help="Show input, outputs and errors for failed tests")
    grade.add_argument("--json", action="store_true", help="Also print the full result as JSON")
    grade.set_defaults(func=cmd_grade)

    score = subparsers.add_parser("score", help="Score a quiz answer file")
    _add_bank_arguments(score)
    score.add_argument("--answers", required=True, help="JSON object mapping question id to answer")
    score.set_defaults(func=cmd_score)

    sample = subparsers.add_parser("sample-config", help="Write a sample grader configuration")
    sample.add_argument("--out", required=True, help="Output path")
    sample.set_defaults(func=cmd_sample_config)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except ValueError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1
