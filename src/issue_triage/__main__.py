"""Allow `python -m issue_triage`."""

import sys

from .cli_router import main

sys.exit(main())
