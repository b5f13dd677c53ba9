"""
Module entry point for nfprom.

The server child is launched as ``python -m nfprom serve ...`` so that it
runs the same installed code as the poller that spawned it.
"""

from __future__ import annotations

import sys

from nfprom.cli import main

if __name__ == "__main__":
    sys.exit(main())
