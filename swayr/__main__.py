"""Allow running the client with ``python -m swayr``."""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())
