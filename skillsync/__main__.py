"""Main entry point for skillsync CLI."""
import sys
from skillsync.cli.main import cli


def main() -> int:
    """Main entry point."""
    try:
        cli()
        return 0
    except Exception:
        return 1


if __name__ == "__main__":
    sys.exit(main())
