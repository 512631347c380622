#!/usr/bin/env python3
"""
keygen.py - Generate Fernet encryption keys for question banks.

Usage:
    python tools/keygen.py --out BANK.key

Note: You can also use passwords directly with build_bank.py --password
      instead of generating key files.
"""

import argparse
import sys
from cryptography.fernet import Fernet


def generate_key(output_file: str) -> None:
    """Generate a new Fernet key and save it to file."""
    try:
        key = Fernet.generate_key()

        with open(output_file, 'wb') as f:
            f.write(key)

        print(f"[OK] Key written to {output_file}")
        print("[!] Keep this key out of version control and away from candidates.")

    except OSError as e:
        print(f"[ERROR] Error writing key: {e}", file=sys.stderr)
        sys.exit(1)


def main():
    parser = argparse.ArgumentParser(description="Generate a Fernet key for encrypting question banks.")
    parser.add_argument("--out", required=True, help="Output file path for the key (e.g., BANK.key)")

    args = parser.parse_args()
    generate_key(args.out)


if __name__ == "__main__":
    main()
