import re
from dataclasses import dataclass

from minesweeper.board import Board, Outcome

CRLF = "\r\n"

HELP_MESSAGE = (
    "Available Actions: 'dig x y' or 'flag x y' or 'deflag x y' "
    "where x and y are coordinates of the cell" + CRLF
    + "Other Commands: 'look' : Shows the board, 'bye' : Ends game" + CRLF
)
BOOM_MESSAGE = "BOOM!" + CRLF

_REQUEST = re.compile(
    r"(look)|(help)|(bye)|(dig -?[0-9]+ -?[0-9]+)|(flag -?[0-9]+ -?[0-9]+)|(deflag -?[0-9]+ -?[0-9]+)"
)


def welcome_message(width: int, height: int, players: int) -> str:
    return (f"Welcome to Minesweeper. Board: {width} columns by {height} rows. "
            f"Players: {players} including you. Type 'help' for help." + CRLF)


@dataclass(frozen=True)
class Reply:
    """What a session should do after one request."""
    text: str
    exploded: bool = False
    closes_session: bool = False


BYE = Reply("", closes_session=True)


# ==========================================
# Command Registry & Decorator
# ==========================================
COMMAND_REGISTRY = {}


def handle_command(name: str, takes_coordinates: bool = False):
    """
    Decorator to register command handlers.
    Coordinate commands are called as func(board, x, y), the others as func(board).
    """
    def decorator(func):
        COMMAND_REGISTRY[name] = {
            "func": func,
            "takes_coordinates": takes_coordinates
        }
        return func
    return decorator


def handle_request(board: Board, line: str) -> Reply:
    """
    Run one client line against the board and return the reply for that client.
    Anything outside the command grammar gets the help text.
    """
    if _REQUEST.fullmatch(line) is None:
        return Reply(HELP_MESSAGE)

    tokens = line.split(" ")
    handler_info = COMMAND_REGISTRY[tokens[0]]
    func = handler_info["func"]
    if handler_info["takes_coordinates"]:
        return func(board, int(tokens[1]), int(tokens[2]))
    return func(board)


# ==========================================
# Handlers
# ==========================================

@handle_command("look")
def _look(board: Board) -> Reply:
    return Reply(board.render())


@handle_command("help")
def _help(board: Board) -> Reply:
    return Reply(HELP_MESSAGE)


@handle_command("bye")
def _bye(board: Board) -> Reply:
    return BYE


@handle_command("dig", takes_coordinates=True)
def _dig(board: Board, x: int, y: int) -> Reply:
    if board.dig(x, y) is Outcome.EXPLODED:
        return Reply(BOOM_MESSAGE, exploded=True)
    return Reply(board.render())


@handle_command("flag", takes_coordinates=True)
def _flag(board: Board, x: int, y: int) -> Reply:
    board.flag(x, y)
    return Reply(board.render())


@handle_command("deflag", takes_coordinates=True)
def _deflag(board: Board, x: int, y: int) -> Reply:
    board.deflag(x, y)
    return Reply(board.render())
