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
from typing import List

import websockets
from websockets.asyncio.server import ServerConnection

from protocol import KINDS_BY_RELAY_EVENT, encode_packet


class RelayHub:
    """
    Fan-out between workers. A relay from one worker is echoed, untouched, to
    every other connected worker and never back to the sender. Nothing is
    queued: with no other workers connected the message is gone.
    """

    def __init__(self):
        self._workers: List[object] = []

    @property
    def worker_count(self) -> int:
        return len(self._workers)

    def worker_connected(self, worker) -> None:
        self._workers.append(worker)
        logging.info(f"Worker {worker} connected ({self.worker_count} total)")

    def worker_disconnected(self, worker) -> None:
        if worker in self._workers:
            self._workers.remove(worker)
            logging.info(f"Worker {worker} disconnected ({self.worker_count} total)")

    async def relay(self, sender, event: str, data) -> int:
        kind = KINDS_BY_RELAY_EVENT.get(event)
        if kind is None:
            logging.warning(f"Worker {sender} sent unknown event {event!r}")
            return 0
        recipients = [worker for worker in self._workers if worker is not sender]
        logging.debug(f"Relaying {event!r} from {sender} to {len(recipients)} worker(s)")
        for worker in recipients:
            await worker.send(kind.echo_event, data)
        return len(recipients)


class WorkerLink:
    """
    Master side of one worker connection.
    """

    def __init__(self, websocket: ServerConnection):
        self._websocket = websocket
        self._peername = websocket.remote_address

    def __repr__(self):
        return f"WorkerLink({self._peername})"

    async def send(self, event: str, data) -> None:
        try:
            await self._websocket.send(encode_packet(event, data))
        except websockets.exceptions.ConnectionClosed:
            logging.debug(f"{self._peername} gone, {event!r} not delivered")
