"""Allow running swl as `python -m swl`."""

from __future__ import annotations

import sys

from swl.cli import main

sys.exit(main())
