#!/usr/bin/env python3
"""
Entry point wrapper for running the grader from a source checkout.

Uses absolute imports so the script works without installing the package.
"""

import sys
import os

if getattr(sys, 'frozen', False):
    # Running as compiled executable
    bundle_dir = sys._MEIPASS
else:
    # Running as script
    bundle_dir = os.path.dirname(os.path.abspath(__file__))

sys.path.insert(0, bundle_dir)

if __name__ == "__main__":
    from gradecore.cli import main
    sys.exit(main())
