import socket

CRLF = "\r\n"


def create_tcp_passive_socket(host: str, port: int, backlog: int = 5) -> socket.socket:
    """
    Create a TCP passive (listening) socket.
    """
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    s.bind((host, port))
    s.listen(backlog)
    return s


def create_tcp_socket(host: str, port: int) -> socket.socket:
    """
    Create a normal active TCP socket.
    """
    s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    s.connect((host, port))
    return s


class ConnectionClosedByPeer(Exception):
    pass


class LineTooLong(Exception):
    pass


MAX_LINE_BYTES = 65536


def send_text(sock: socket.socket, text: str) -> None:
    """
    Send an already CRLF-terminated block of text (one or more lines).
    Writes always block until done, whatever timeout the last recv_line used.
    """
    sock.settimeout(None)
    sock.sendall(text.encode("utf-8"))


def send_line(sock: socket.socket, line: str) -> None:
    """
    Send a single line, appending the CRLF terminator.
    """
    send_text(sock, line + CRLF)


def recv_line(sock: socket.socket, buffer: bytearray, timeout: float | None = None,
              max_line: int = MAX_LINE_BYTES) -> str | None:
    """
    Receive one line terminated by LF (an optional preceding CR is dropped).

    `buffer` holds bytes already read past the previous line and must be
    reused across calls on the same socket.
    Returns None on timeout.
    Raises ConnectionClosedByPeer once the peer has closed and the buffer is drained.
    Raises LineTooLong if more than `max_line` bytes arrive without a terminator.
    """
    sock.settimeout(timeout)

    end = buffer.find(b"\n")
    while end < 0:
        if len(buffer) > max_line:
            raise LineTooLong(f"no line terminator within {max_line} bytes")
        try:
            chunk = sock.recv(4096)
        except socket.timeout:
            return None
        if not chunk:
            if not buffer:
                raise ConnectionClosedByPeer()
            # last line sent without a terminator
            line = bytes(buffer)
            buffer.clear()
            return line.rstrip(b"\r").decode("utf-8", errors="replace")
        scanned = len(buffer)
        buffer.extend(chunk)
        end = buffer.find(b"\n", scanned)

    line = bytes(buffer[:end])
    del buffer[:end + 1]
    return line.rstrip(b"\r").decode("utf-8", errors="replace")


def recv_lines(sock: socket.socket, buffer: bytearray, count: int, timeout: float | None = None) -> list[str]:
    """
    Receive exactly `count` lines. Raises TimeoutError if one of them does not arrive in time.
    """
    lines = []
    for _ in range(count):
        line = recv_line(sock, buffer, timeout)
        if line is None:
            raise TimeoutError(f"timed out after {len(lines)} of {count} lines")
        lines.append(line)
    return lines
