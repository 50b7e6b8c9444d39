"""Allow ``python -m ntexport``."""

import sys

from ntexport.cli import main

sys.exit(main())
