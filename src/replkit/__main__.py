"""Allow ``python -m replkit``."""

from __future__ import annotations

import sys

from replkit.cli import main

sys.exit(main())
