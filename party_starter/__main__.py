import sys

from party_starter.runtime.cli import main

if __name__ == "__main__":
    sys.exit(main())
