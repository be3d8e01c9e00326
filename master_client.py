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

import asyncio
import logging
from typing import Optional

import websockets
from websockets.asyncio.client import connect, ClientConnection

from protocol import RequestKind, MalformedPacket, KINDS_BY_ECHO_EVENT, encode_packet, decode_packet, decode_relay
from worker_node import WorkerNode


class MasterClient:
    """
    The worker's persistent connection to the master.

    Successful mutations are published here and come back from the master as
    echoes on every other worker. Reconnects with backoff when the master goes
    away; anything published meanwhile is dropped.
    """

    def __init__(self, uri: str, worker: WorkerNode, retry_delay: float = 5.0):
        self._uri = uri
        self._retry_delay = retry_delay
        self._worker = worker
        self._websocket: Optional[ClientConnection] = None
        self._task: Optional[asyncio.Task] = None
        self._stopping = False
        self.connected_event = asyncio.Event()
        self._worker.set_relay(self)

    @property
    def connected(self) -> bool:
        return self._websocket is not None

    async def publish(self, kind: RequestKind, username: str, res: dict) -> bool:
        if self._websocket is None:
            logging.warning(f"Not connected to master, {kind.relay_event!r} for {username} dropped")
            return False
        try:
            await self._websocket.send(encode_packet(kind.relay_event, {"username": username, "res": res}))
        except websockets.exceptions.ConnectionClosed:
            logging.warning(f"Master connection closed, {kind.relay_event!r} for {username} dropped")
            return False
        return True

    async def run(self):
        while not self._stopping:
            try:
                await self._listen()
            except Exception as e:
                logging.exception(e)
                logging.error(f"Lost master server at {self._uri}, retrying in {self._retry_delay}s")
                await asyncio.sleep(self._retry_delay)

    async def _listen(self):
        # connect() retries transient failures itself; anything else is raised
        async for websocket in connect(self._uri):
            self._websocket = websocket
            self.connected_event.set()
            logging.info(f"Connected to master server at {self._uri}")
            try:
                async for message in websocket:
                    await self._handle_message(message)
            except websockets.exceptions.ConnectionClosed:
                pass
            finally:
                self._websocket = None
                self.connected_event.clear()
            logging.info(f"Disconnected from master server.")
            if self._stopping:
                return

    async def _handle_message(self, message):
        try:
            packet = decode_packet(message)
            kind, username, res = decode_relay(packet, KINDS_BY_ECHO_EVENT)
        except MalformedPacket as e:
            logging.warning(f"Master sent a malformed relay: {e}")
            return
        try:
            await self._worker.relay_received(kind, username, res)
        except Exception as e:
            logging.exception(e)
            logging.error(f"Could not deliver {kind.echo_event!r} for {username}")

    async def __aenter__(self):
        logging.debug(f"Starting master connection to {self._uri}")
        self._task = asyncio.create_task(self.run())
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._stopping = True
        if self._websocket is not None:
            await self._websocket.close()
        if self._task is not None:
            logging.debug(f"Stopping master connection")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logging.exception(e)
                logging.error(f"Master connection ended with an error")
            self._task = None
