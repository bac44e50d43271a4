"""Allow ``python -m bloat_sentinel``."""

import sys

from .cli import main

sys.exit(main())
