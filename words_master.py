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
import os

import websockets
from websockets.asyncio.server import ServerConnection

from config import Config, ConfigurationLoadError
from logger import setup_logging
from protocol import MalformedPacket, decode_packet
from relay_hub import RelayHub, WorkerLink
from websocket_server import WebsocketServer


class WordsMaster:
    """
    The master node. Workers connect here and every relay is passed on to all
    the other workers.
    """

    def __init__(self, config: dict, port: int = None, host: str = ""):
        self._config = config
        self._hub = RelayHub()
        self._websocket_server = WebsocketServer(
            host,
            self._config["master"]["port"] if port is None else port,
            self.handler,
        )

    @property
    def hub(self) -> RelayHub:
        return self._hub

    @property
    def port(self) -> int:
        return self._websocket_server.port

    async def handler(self, websocket: ServerConnection):
        link = WorkerLink(websocket)
        self._hub.worker_connected(link)
        try:
            async for message in websocket:
                try:
                    packet = decode_packet(message)
                except MalformedPacket as e:
                    logging.warning(f"{link} sent a malformed frame: {e}")
                    continue
                await self._hub.relay(link, packet["event"], packet.get("data"))
        except websockets.exceptions.ConnectionClosed:
            logging.debug(f"{link} websocket connection closed")
        finally:
            self._hub.worker_disconnected(link)

    async def __aenter__(self):
        await self._websocket_server.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self._websocket_server.__aexit__(exc_type, exc_val, exc_tb)

    async def begin(self):
        logging.info("Starting Words Master Server")
        async with self:
            try:
                logging.info("Ctrl^C to quit")
                while True:
                    await asyncio.sleep(1)
            except asyncio.CancelledError:
                logging.info("Cancelled ...")
            except KeyboardInterrupt:
                logging.info("Cancelled ...")
            finally:
                logging.info("Stopping Server ...")


async def main():
    logging.info("Starting words master ...")

    config = Config(os.environ.get("WORDS_CONFIG", "./config.toml"))

    try:
        await config.initialize()
    except ConfigurationLoadError:
        logging.error("Could not load configuration. Exiting")
        return

    words_master = WordsMaster(config.config)
    await words_master.begin()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
