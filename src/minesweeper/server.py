import logging
import socket
import threading
import time
from typing import Optional

from utils.TCPutils import (
    ConnectionClosedByPeer,
    LineTooLong,
    create_tcp_passive_socket,
    recv_line,
    send_text,
)

from minesweeper import config
from minesweeper.board import Board
from minesweeper.protocol import handle_request, welcome_message

logger = logging.getLogger(__name__)

ACCEPT_RETRY_DELAY = 0.1


class MinesweeperServer:
    """
    Multiplayer Minesweeper server.

    One thread per connected client; all of them play on the same Board.
    The Board does its own locking, `self.lock` only guards the player count.
    """

    def __init__(self, host: str, port: int, debug: bool, board: Board):
        self.host = host
        self.port = port
        self.debug = debug
        self.board = board
        self.server_socket: Optional[socket.socket] = None
        self.is_running = False

        self.num_players = 0
        self.lock = threading.Lock()

    @property
    def player_count(self) -> int:
        with self.lock:
            return self.num_players

    def start(self):
        """Bind and listen. Errors here are fatal and propagate to the caller."""
        self.server_socket = create_tcp_passive_socket(self.host, self.port)
        # port 0 means "pick one"; report the real one
        self.port = self.server_socket.getsockname()[1]
        self.server_socket.settimeout(1.0)
        self.is_running = True
        width, height = self.board.dimensions()
        logger.info(f"Minesweeper server listening on {self.host}:{self.port} "
                    f"({width}x{height} board, debug={self.debug})")

    def serve(self):
        """Accept clients until stop() is called."""
        while self.is_running:
            try:
                client_sock, addr = self.server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self.is_running:
                    break
                # ECONNABORTED, EMFILE and friends: keep serving
                logger.error(f"accept() failed: {e}")
                time.sleep(ACCEPT_RETRY_DELAY)
                continue

            self._spawn_handler(addr, client_sock)
        logger.info("Accept loop exited")

    def _spawn_handler(self, addr, client_sock: socket.socket):
        with self.lock:
            self.num_players += 1
        logger.info(f"Accepted connection from {addr}")
        t = threading.Thread(target=self._client_handler, args=(addr, client_sock), daemon=True)
        try:
            t.start()
        except RuntimeError as e:
            logger.error(f"Could not start handler for {addr}: {e}")
            with self.lock:
                self.num_players -= 1
            client_sock.close()

    def serve_forever(self):
        self.start()
        try:
            self.serve()
        finally:
            self.stop()

    def stop(self):
        if not self.is_running:
            return
        self.is_running = False
        self.server_socket.close()
        logger.info("Server stopped")

    # -------------------------------------------------------
    # Per-connection loop
    # -------------------------------------------------------
    def _client_handler(self, addr, client_sock: socket.socket):
        buffer = bytearray()
        try:
            with client_sock:
                width, height = self.board.dimensions()
                send_text(client_sock, welcome_message(width, height, self.player_count))

                while self.is_running:
                    try:
                        line = recv_line(client_sock, buffer, timeout=1.0)
                    except ConnectionClosedByPeer:
                        break
                    except LineTooLong as e:
                        logger.warning(f"Dropping {addr}: {e}")
                        break
                    if line is None:
                        continue

                    logger.debug(f"{addr} -> {line!r}")
                    reply = handle_request(self.board, line)
                    if reply.closes_session:
                        break
                    send_text(client_sock, reply.text)
                    if reply.exploded and not self.debug:
                        break
        except OSError as e:
            logger.warning(f"Connection error with {addr}: {e}")
        finally:
            with self.lock:
                self.num_players -= 1
                remaining = self.num_players
            logger.info(f"Client {addr} disconnected ({remaining} players left)")


def run_minesweeper_server(debug: bool, file=None, size_x: int = config.DEFAULT_SIZE,
                           size_y: int = config.DEFAULT_SIZE, port: int = config.DEFAULT_PORT,
                           host: str = config.HOST):
    """
    Start a server on `port` with a board loaded from `file` if given,
    otherwise a random size_x by size_y board. Runs until interrupted.
    """
    if file is not None:
        board = Board.from_file(file)
    else:
        board = Board(size_x, size_y)
        logger.info(f"Generated random {size_x}x{size_y} board")

    server = MinesweeperServer(host, port, debug, board)
    server.serve_forever()
