from __future__ import annotations

import sys
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]


def pytest_configure() -> None:
    # Source checkout first, then the shared fakes next to the unit tests.
    for path in (_ROOT / "src", _ROOT / "tests" / "unit"):
        if path.exists() and str(path) not in sys.path:
            sys.path.insert(0, str(path))
