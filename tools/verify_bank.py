#!/usr/bin/env python3
"""
verify_bank.py - Validate a question bank and optionally check its reference
solutions.

Usage:
    python tools/verify_bank.py --bank bank.json
    python tools/verify_bank.py --bank banks/bank.enc --key-file BANK.key
    python tools/verify_bank.py --bank bank.json --solutions solutions/

With --solutions, every question that has a <question id>.py file in the
directory is graded with it; a reference solution must pass every case.
"""

import argparse
import getpass
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from gradecore.bank import QuestionBank, decrypt_bank_bytes, validate_bank_dict
from gradecore.errors import BankError
from gradecore.grader import Grader


def verify_bank(bank_file: str, key_file: str = None, use_password: bool = False,
                solutions_dir: str = None, verbose: bool = False) -> bool:
    """
    Verify a question bank (encrypted or plaintext).
    Returns True if valid, False otherwise.
    """
    data = Path(bank_file).read_bytes()
    if not data.lstrip().startswith(b'{'):
        key = Path(key_file).read_bytes() if key_file else None
        password = getpass.getpass("Enter decryption password: ") if use_password else None
        try:
            data = decrypt_bank_bytes(data, key=key, password=password)
        except BankError as e:
            print(f"[ERROR] {e}", file=sys.stderr)
            return False
        print("[OK] Bank decrypted successfully")

    try:
        bank_data = json.loads(data)
    except json.JSONDecodeError as e:
        print(f"[ERROR] Invalid JSON: {e}", file=sys.stderr)
        return False

    errors, warnings = validate_bank_dict(bank_data)
    for warn in warnings[:10]:
        print(f"[WARNING] {warn}")
    if len(warnings) > 10:
        print(f"  ... and {len(warnings) - 10} more")
    if errors:
        for err in errors[:20]:
            print(f"[ERROR] {err}")
        return False

    bank = QuestionBank.from_dict(bank_data)
    total_cases = sum(len(q.test_cases) for q in bank.questions)
    print(f"[OK] Group: {bank.group}, Version: {bank.version}")
    print(f"  Questions: {len(bank.questions)}, test cases: {total_cases}, quiz questions: {len(bank.quiz_questions)}")

    if not solutions_dir:
        return True

    grader = Grader()
    all_passed = True
    for question in bank.questions:
        solution = Path(solutions_dir) / f"{question.id}.py"
        if not solution.exists():
            if verbose:
                print(f"  [SKIP] {question.id}: no reference solution")
            continue
        result = grader.grade_submission(question, solution.read_text(encoding='utf-8'))
        status = "OK" if result.success else "FAIL"
        print(f"  [{status}] {question.id}: {result.total_passed}/{result.total_tests}")
        if not result.success:
            all_passed = False
            if verbose:
                print(grader.format_test_results(result, show_details=True))

    return all_passed


def main():
    parser = argparse.ArgumentParser(description="Validate question bank schema and content.")
    parser.add_argument("--bank", required=True, help="Path to bank file (.enc or .json)")
    parser.add_argument("--key-file", help="Encryption key file (for key-file encrypted banks)")
    parser.add_argument("--password", action="store_true", help="Use password to decrypt")
    parser.add_argument("--solutions", help="Directory of reference solutions named <question id>.py")
    parser.add_argument("--verbose", action="store_true", help="Show detailed information")

    args = parser.parse_args()

    try:
        success = verify_bank(args.bank, args.key_file, args.password, args.solutions, args.verbose)
    except FileNotFoundError as e:
        print(f"[ERROR] File not found: {e.filename}", file=sys.stderr)
        success = False
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
