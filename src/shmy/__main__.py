"""Allow running as `python -m shmy`."""

import sys

from .cli import main

sys.exit(main())
