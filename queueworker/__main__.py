import sys

from queueworker.cli import main

if __name__ == "__main__":
    sys.exit(main())
