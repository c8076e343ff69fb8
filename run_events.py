"""Convenience shim to run the events workflow without installing the package."""

from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), "src"))

from wiwo.pipeline.runner import main  # noqa: E402


if __name__ == "__main__":
    main()
