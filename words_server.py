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
import argparse
import asyncio
import contextlib
import logging
import os

from websockets.asyncio.server import ServerConnection

from client_session import ClientSession
from config import Config, ConfigurationLoadError
from credential_store import CredentialStore
from hashing.password import PasswordHasher
from logger import setup_logging
from master_client import MasterClient
from session_registry import SessionRegistry
from websocket_server import WebsocketServer
from worker_node import WorkerNode


class WordsServer:
    """
    A worker node process: client websocket listener, credential store and the
    link to the master.
    """

    def __init__(self, config: dict, master_uri: str, port: int = None):
        self._config = config
        self._sessions = SessionRegistry()
        self._store = CredentialStore(
            self._config["database"]["path"],
            PasswordHasher(
                n=self._config["passwords"]["scrypt_n"],
                r=self._config["passwords"]["scrypt_r"],
                p=self._config["passwords"]["scrypt_p"],
            ),
        )
        self._worker = WorkerNode(self._store, self._sessions, self._config["words"]["max_words_per_request"])
        self._master_client = MasterClient(master_uri, self._worker)
        self._websocket_server = WebsocketServer(
            self._config["worker"]["host"],
            self._config["worker"]["port"] if port is None else port,
            self.handler,
        )

    @property
    def port(self) -> int:
        return self._websocket_server.port

    @property
    def master_client(self) -> MasterClient:
        return self._master_client

    async def handler(self, websocket: ServerConnection):
        logging.info(f"Connection from client {websocket.remote_address}")
        await ClientSession(websocket, self._worker).run()

    async def __aenter__(self):
        await self._store.initialize()
        async with contextlib.AsyncExitStack() as stack:
            await stack.enter_async_context(self._master_client)
            await stack.enter_async_context(self._websocket_server)
            self._exit_stack = stack.pop_all()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        # closes the client listener before the master link
        await self._exit_stack.__aexit__(exc_type, exc_val, exc_tb)

    async def begin(self):
        logging.info("Starting Words Worker Server")
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


async def main(port: int = None):
    logging.info("Starting words worker ...")

    config = Config(os.environ.get("WORDS_CONFIG", "./config.toml"))

    try:
        await config.initialize()
    except ConfigurationLoadError:
        logging.error("Could not load configuration. Exiting")
        return

    words_server = WordsServer(config.config, config.master_uri, port)
    await words_server.begin()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Words worker node")
    parser.add_argument("port", type=int, nargs="?", help="port to listen for clients on")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(main(args.port))
