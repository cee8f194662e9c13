"""Allow ``python -m quasarkit``."""

import sys

from quasarkit.cli import main

sys.exit(main())
