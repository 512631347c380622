#!/usr/bin/env python3
"""
build_bank.py - Validate and encrypt a plaintext JSON question bank.

Usage with key file:
    python tools/build_bank.py --in bank.json --out banks/bank.enc --key-file BANK.key

Usage with password:
    python tools/build_bank.py --in bank.json --out banks/bank.enc --password
"""

import argparse
import getpass
import hashlib
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from gradecore.bank import encrypt_bank_bytes, validate_bank_dict


def build_bank(in_file: str, out_file: str, key_file: str = None, use_password: bool = False) -> None:
    """Encrypt a plaintext JSON question bank after validating it."""
    key = None
    password = None

    if use_password:
        password = getpass.getpass("Enter encryption password: ")
        if password != getpass.getpass("Confirm password: "):
            print("[ERROR] Passwords do not match", file=sys.stderr)
            sys.exit(1)
        if len(password) < 8:
            print("[ERROR] Password must be at least 8 characters", file=sys.stderr)
            sys.exit(1)
    else:
        with open(key_file, 'rb') as f:
            key = f.read().strip()

    with open(in_file, 'rb') as f:
        plaintext = f.read()

    try:
        bank_data = json.loads(plaintext)
    except json.JSONDecodeError as e:
        print(f"[ERROR] Invalid JSON in input file: {e}", file=sys.stderr)
        sys.exit(1)

    errors, warnings = validate_bank_dict(bank_data)
    for warn in warnings:
        print(f"[WARNING] {warn}")
    if errors:
        for err in errors:
            print(f"[ERROR] {err}", file=sys.stderr)
        sys.exit(1)

    print(f"[OK] Input validated: group {bank_data['group']}, version {bank_data['version']}, "
          f"{len(bank_data['questions'])} question(s)")

    final_data = encrypt_bank_bytes(plaintext, key=key, password=password)

    Path(out_file).parent.mkdir(parents=True, exist_ok=True)
    with open(out_file, 'wb') as f:
        f.write(final_data)

    print(f"[OK] Bank encrypted ({'password' if use_password else 'key file'})")
    print(f"  Output: {out_file} ({len(final_data)} bytes)")
    print(f"  SHA256: {hashlib.sha256(final_data).hexdigest()}")


def main():
    parser = argparse.ArgumentParser(description="Encrypt a plaintext JSON question bank.")
    parser.add_argument("--in", dest="in_file", required=True, help="Input plaintext JSON file")
    parser.add_argument("--out", required=True, help="Output encrypted bank file (.enc)")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--key-file", help="File containing the encryption key")
    group.add_argument("--password", action="store_true", help="Use password-based encryption instead of key file")

    args = parser.parse_args()
    build_bank(args.in_file, args.out, args.key_file, args.password)


if __name__ == "__main__":
    main()
