#!/usr/bin/env python3
"""
lobbywatch - Main runner script

Usage:
    python run.py                               # Run with defaults from config/config.yaml
    python run.py --serve                       # Also serve snapshots over HTTP
    python run.py --replay testlogs/ghost1/ghost.log
"""

from __future__ import annotations

import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

from lobbywatch.app import main

if __name__ == "__main__":
    sys.exit(main())
