"""Multiplayer Minesweeper over a line-based TCP protocol."""
from minesweeper.board import Board, MalformedBoardSource, Outcome
from minesweeper.server import MinesweeperServer, run_minesweeper_server

__all__ = ["Board", "MalformedBoardSource", "Outcome", "MinesweeperServer", "run_minesweeper_server"]
