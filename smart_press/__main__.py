"""Allow running smart_press with ``python -m smart_press``."""

import sys

from smart_press.cli.main import main

sys.exit(main())
