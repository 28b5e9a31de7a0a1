import sys
from pathlib import Path

# Allow running from a checkout without installing the package
sys.path.append(str(Path(__file__).resolve().parent.parent))

from party_starter.runtime.cli import main


def launch() -> int:
    return main(sys.argv[1:])


if __name__ == "__main__":
    sys.exit(launch())
