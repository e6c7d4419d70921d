"""
Root conftest: puts src/ on sys.path so tests run without an install.
Shared fixtures live in tests/conftest.py.
"""

import sys
from pathlib import Path

# Ensure src on path
sys.path.insert(0, str(Path(__file__).parent / "src"))
