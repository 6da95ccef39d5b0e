"""Run the wiki server with ``python -m twserver``."""

import sys

from twserver.web.main import main

if __name__ == "__main__":
    sys.exit(main())
