"""
Configuration loader for grader parameters.

Handles loading and validating grader configuration files.
"""

import json
import sys
from pathlib import Path
from typing import Optional

from .models import GraderConfig, DEFAULT_ALLOWED_MODULES


CONFIG_FILENAME = "grader_config.json"


def load_config(config_path: Optional[Path] = None) -> GraderConfig:
    """
    Load grader configuration from a JSON file.

    Args:
        config_path: Path to the configuration file. If None, looks for
                    'grader_config.json' in the current directory.

    Returns:
        GraderConfig object with validated configuration

    Raises:
        ValueError: If config is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME
    config_path = Path(config_path)

    if not config_path.exists():
        print(f"Warning: Config file '{config_path}' not found. Using default configuration.", file=sys.stderr)
        return GraderConfig.default()

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")
    except OSError as e:
        raise ValueError(f"Error reading config file: {e}")

    if not isinstance(data, dict):
        raise ValueError("Invalid configuration: top level must be an object")

    try:
        config = GraderConfig.from_dict(data)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid configuration: {e}")

    is_valid, error_message = config.validate()
    if not is_valid:
        raise ValueError(f"Invalid configuration: {error_message}")

    return config


def create_sample_config(output_path: Path):
    """
    Create a sample configuration file.

    Args:
        output_path: Path where to save the sample config
    """
    sample_config = {
        "default_time_limit_ms": 3000,
        "memory_limit_mb": 512,
        "passing_score": 70,
        "max_output_chars": 10000,
        "allowed_modules": list(DEFAULT_ALLOWED_MODULES),
        "python_executable": None,
        "_comment": "This is a sample grader configuration. Adjust values as needed.",
        "_instructions": {
            "default_time_limit_ms": "Per-test-case time limit for questions that do not set one",
            "memory_limit_mb": "Address-space limit for each sandboxed run (Linux/macOS only)",
            "passing_score": "Percentage a quiz attempt needs to pass (0-100)",
            "max_output_chars": "How much printed candidate output is kept per test case",
            "allowed_modules": "Standard library modules candidate code may import",
            "python_executable": "Interpreter for sandboxed runs (null = the grader's own)"
        }
    }

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(sample_config, f, indent=2)

    print(f"Sample configuration created at: {output_path}")
