# showtracker/__main__.py
import sys

from .cli import app


def cli(argv=None):
    """Launcher so `python3 -m showtracker [command]` works like the console script."""
    return app(args=argv)


if __name__ == "__main__":
    sys.exit(cli())
