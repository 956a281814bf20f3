"""
Test configuration and fixtures
"""
import sys
from pathlib import Path

# Add the src directory (for `xvest.*`) to the Python path before collection runs.
project_root = Path(__file__).resolve().parents[1]
src_path = project_root / "src"
sys.path.insert(0, str(src_path))
