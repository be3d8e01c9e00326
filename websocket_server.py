"""
WordsRelay
Copyright (C) 2024 thiccaxe

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published
by the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

import logging
from typing import Awaitable, Callable, Optional

from websockets.asyncio.server import serve, Server, ServerConnection


class WebsocketServer:
    """
    Listening websocket endpoint; each connection is handed to `handler` and
    closed when the handler returns.
    """

    def __init__(self, host: str, port: int, handler: Callable[[ServerConnection], Awaitable[None]]):
        self._host = host
        self._port = port
        self._handler = handler
        self._server: Optional[Server] = None

    @property
    def port(self) -> int:
        """
        Bound port, useful when listening on port 0.
        """
        if self._server is None:
            return self._port
        return self._server.sockets[0].getsockname()[1]

    async def __aenter__(self):
        logging.debug(f"Starting websocket server on {self._host or '*'}:{self._port}")
        self._server = await serve(self._handler, self._host or None, self._port)
        logging.info(f"Running server on port {self.port}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._server is not None:
            logging.debug(f"Stopping websocket server")
            self._server.close()
            await self._server.wait_closed()
            self._server = None
