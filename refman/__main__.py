"""Allow running refman as python -m refman."""

import sys

from .cli import main

sys.exit(main())
