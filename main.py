import sys

from hcp.cli import main

if __name__ == "__main__":
    sys.exit(main())
