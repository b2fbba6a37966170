"""Package entry point for ``python -m seatalk_stickers``.

WHY: The bridge is deployed as a single long-running process; ``-m``
is the simplest way to start it.

HOW: Delegates to run_server(), which configures logging and starts
uvicorn on SERVER_HOST:SERVER_PORT.
"""

from seatalk_stickers.server.app import run_server

if __name__ == "__main__":
    run_server()
