import sys

import uvloop

from . import main


def cli() -> None:
    sys.exit(uvloop.run(main()))


if __name__ == "__main__":
    cli()
