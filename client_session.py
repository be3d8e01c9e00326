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

import websockets
from websockets.asyncio.server import ServerConnection
from websockets.frames import CloseCode
from websockets.protocol import State

from protocol import (
    RequestKind, MalformedPacket, MALFORMED_REQUEST_EVENT,
    encode_packet, decode_packet, decode_request,
)
from worker_node import WorkerNode


class ClientSession:
    """
    One client websocket on a worker.

    Requests are handled one at a time, in arrival order. Pushed updates from
    other sessions may interleave with responses.
    """

    def __init__(self, websocket: ServerConnection, worker: WorkerNode):
        self._websocket = websocket
        self._worker = worker
        self._peername = websocket.remote_address
        self._open = True
        self._handlers = {
            RequestKind.LOGIN: lambda request: self._worker.login(self, request),
            RequestKind.CREATE_ACCOUNT: self._worker.create_account,
            RequestKind.ADD_WORD: lambda request: self._worker.add_word(self, request),
            RequestKind.ADD_WORDS: lambda request: self._worker.add_words(self, request),
            RequestKind.REMOVE_WORD: lambda request: self._worker.remove_word(self, request),
            RequestKind.GET_WORDS: lambda request: self._worker.get_words(self),
        }

    @property
    def is_open(self) -> bool:
        # a close from the peer lands while a request is still being handled
        return self._open and self._websocket.state is State.OPEN

    def __repr__(self):
        return f"ClientSession({self._peername})"

    async def send(self, event: str, data: dict, packet_id=None) -> None:
        try:
            await self._websocket.send(encode_packet(event, data, packet_id))
        except websockets.exceptions.ConnectionClosed:
            logging.debug(f"{self._peername} dropped {event!r}, connection closed")

    async def run(self):
        logging.debug(f"{self._peername} client connected")
        try:
            async for message in self._websocket:
                try:
                    packet = decode_packet(message)
                except MalformedPacket as e:
                    logging.warning(f"{self._peername} sent a malformed frame ({e}), dropping session")
                    code = CloseCode.UNSUPPORTED_DATA if isinstance(message, bytes) else CloseCode.INVALID_DATA
                    await self._websocket.close(code, "malformed frame")
                    break
                await self._handle_packet(packet)
        except websockets.exceptions.ConnectionClosed:
            logging.debug(f"{self._peername} websocket connection closed")
        finally:
            self._open = False
            self._worker.disconnected(self)
            logging.debug(f"{self._peername} client disconnected")

    async def _handle_packet(self, packet: dict):
        logging.debug(f"{self._peername} received {packet['event']!r}")
        packet_id = packet.get("id")
        try:
            kind, request = decode_request(packet)
        except MalformedPacket as e:
            logging.warning(f"{self._peername} malformed request: {e}")
            await self.send(MALFORMED_REQUEST_EVENT, {"success": False, "event": packet["event"]}, packet_id)
            return

        if kind is RequestKind.LOGOUT:
            response = self._worker.logout(self)
        else:
            response = await self._handlers[kind](request)
        await self.send(kind.response_event, response.to_packet(), packet_id)
