import socket
import struct
import threading

import pytest

from minesweeper.board import Board
from minesweeper.server import MinesweeperServer
from utils.TCPutils import create_tcp_socket, recv_line, recv_lines, send_line


@pytest.fixture
def board_2x2():
    """2x2 board with a single bomb at (1, 1)"""
    return Board.from_text("2 2\n0 0\n0 1\n")


class Player:
    """Minimal line client used to drive a running server"""

    def __init__(self, port: int, recv_buffer_size: int | None = None):
        if recv_buffer_size is None:
            self.sock = create_tcp_socket("127.0.0.1", port)
        else:
            # must be set before connect to shrink the advertised window
            self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, recv_buffer_size)
            self.sock.connect(("127.0.0.1", port))
        self.buffer = bytearray()

    def send(self, line: str):
        send_line(self.sock, line)

    def send_raw(self, data: bytes):
        self.sock.sendall(data)

    def readline(self, timeout: float = 5.0) -> str:
        line = recv_line(self.sock, self.buffer, timeout)
        if line is None:
            raise TimeoutError("no line from server")
        return line

    def readlines(self, count: int, timeout: float = 5.0):
        return recv_lines(self.sock, self.buffer, count, timeout)

    def abort(self):
        """Close with an RST instead of a FIN"""
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, struct.pack("ii", 1, 0))
        self.sock.close()

    def close(self):
        self.sock.close()


@pytest.fixture
def start_server():
    """Factory that runs a server on an ephemeral port and stops it afterwards"""
    servers = []
    players = []

    def _start(board: Board, debug: bool = False, wrap_listener=None):
        server = MinesweeperServer("127.0.0.1", 0, debug, board)
        server.start()
        if wrap_listener is not None:
            server.server_socket = wrap_listener(server.server_socket)
        threading.Thread(target=server.serve, daemon=True).start()
        servers.append(server)

        def connect(**kwargs) -> Player:
            player = Player(server.port, **kwargs)
            players.append(player)
            return player

        return server, connect

    yield _start

    for player in players:
        player.close()
    for server in servers:
        server.stop()
