#!/usr/bin/env python3
"""
Pump Detector - Entry Point
Run from a source checkout without installing: puts the project root on
sys.path, then starts the service from main.py.
"""
import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent.resolve()
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from main import main  # noqa: E402

if __name__ == "__main__":
    print("Starting Pump Detector...\n")
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nDetector stopped by user")
