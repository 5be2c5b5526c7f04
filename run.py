#!/usr/bin/env python3
"""
hotpolls quick-start script

Usage:
  python run.py                          # serve with defaults and environment
  python run.py configs/service.yaml     # serve with a config file
  python run.py --port 9000              # override the bind port
"""

import os
import sys
from pathlib import Path


def load_env_file():
    """Load variables from a .env file next to this script without overriding the environment."""
    env_path = Path(__file__).parent / ".env"
    if env_path.exists():
        with open(env_path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip().strip('"').strip("'")
                    if key and value and key not in os.environ:
                        os.environ[key] = value


load_env_file()


def main():
    from service.cli import app

    app(["serve", *sys.argv[1:]])


if __name__ == "__main__":
    main()
