import argparse
import asyncio
import logging
import sys

from . import config, log


def main() -> None:
    logging.basicConfig(level=logging.INFO)

    parser = argparse.ArgumentParser(prog="rubik-cube", description="Rubik's Cube simulator")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--fast", action="store_true", help="Start in fast (timer) mode with shorter animations")
    parser.add_argument("-n", "--scramble-length", type=int, default=config.SCRAMBLE_LENGTH,
                        help="Number of moves in a scramble")
    args = parser.parse_args()

    if args.debug: log.LOGGER.setLevel(logging.DEBUG)

    # Imported here so --help works without a display
    from .app import App

    scramble_length = int(config.sanitize_numeric_input(args.scramble_length, 1, 200, config.SCRAMBLE_LENGTH))
    try:
        app = App(fast=args.fast, scramble_length=scramble_length)
        asyncio.run(app.run())
    except KeyboardInterrupt:
        print("\nProgram interrupted by user.")
        sys.exit(0)


if __name__ == '__main__':
    main()
