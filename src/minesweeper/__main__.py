import logging

import click

from minesweeper import config
from minesweeper.board import MalformedBoardSource
from minesweeper.server import run_minesweeper_server


def _parse_size(ctx, param, value):
    if value is None:
        return None
    try:
        size_x, size_y = (int(part) for part in value.split(","))
    except ValueError:
        raise click.BadParameter("expected SIZE_X,SIZE_Y, e.g. 42,58")
    if size_x <= 0 or size_y <= 0:
        raise click.BadParameter("board sizes must be positive")
    return size_x, size_y


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--debug/--no-debug", default=config.DEBUG,
              help="Keep clients connected after BOOM!.")
@click.option("--port", type=click.IntRange(0, config.MAXIMUM_PORT), default=config.DEFAULT_PORT,
              show_default=True, help="Port to listen on.")
@click.option("--size", "size", callback=_parse_size, metavar="SIZE_X,SIZE_Y",
              help="Generate a random board of this size.")
@click.option("--file", "board_file", type=click.Path(exists=True, dir_okay=False),
              help="Load the starting board from this file.")
@click.option("--host", default=config.HOST, show_default=True, help="Address to bind.")
def main(debug, port, size, board_file, host):
    """Multiplayer Minesweeper server."""
    if size is not None and board_file is not None:
        raise click.UsageError("--size and --file may not be used together")

    logging.basicConfig(level=config.LOG_LEVEL,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    size_x, size_y = size or (config.DEFAULT_SIZE, config.DEFAULT_SIZE)
    try:
        run_minesweeper_server(debug, board_file, size_x, size_y, port, host)
    except MalformedBoardSource as e:
        raise click.UsageError(f"malformed board file {board_file}: {e}")
    except KeyboardInterrupt:
        click.echo("Stopping server...")


if __name__ == "__main__":
    main()
