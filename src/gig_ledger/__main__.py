"""Allow ``python -m gig_ledger``."""

import sys

from gig_ledger.cli import main

if __name__ == "__main__":
    sys.exit(main())
