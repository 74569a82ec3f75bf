#!/usr/bin/env python3
"""Run a timed insert stress test (see `insertbench.cli`)."""

import sys
from pathlib import Path

# Allow running from a source checkout without installing.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from insertbench.cli import main  # noqa: E402

if __name__ == "__main__":
    raise SystemExit(main())
