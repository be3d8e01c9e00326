import asyncio
import unittest

from master_client import MasterClient
from protocol import RequestKind


class RelayTarget:
    """
    Minimal worker: accepts the relay hook and records delivered echoes.
    """

    def __init__(self):
        self.relay = None
        self.received = []

    def set_relay(self, relay):
        self.relay = relay

    async def relay_received(self, kind, username, res):
        self.received.append((kind, username, res))


async def wait_until(condition, timeout=5.0):
    async def poll():
        while not condition():
            await asyncio.sleep(0.02)
    await asyncio.wait_for(poll(), timeout)


class NotFoundServer:
    """
    Plain HTTP server that rejects every websocket handshake with a 404.
    """

    def __init__(self):
        self.requests = 0
        self._server = None

    async def _handle(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        await reader.readuntil(b"\r\n\r\n")
        self.requests += 1
        writer.write(b"HTTP/1.1 404 Not Found\r\nContent-Length: 0\r\nConnection: close\r\n\r\n")
        await writer.drain()
        writer.close()

    @property
    def uri(self) -> str:
        return f"ws://127.0.0.1:{self._server.sockets[0].getsockname()[1]}"

    async def __aenter__(self):
        self._server = await asyncio.start_server(self._handle, "127.0.0.1", 0)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self._server.close()
        await self._server.wait_closed()


class MasterClientTests(unittest.IsolatedAsyncioTestCase):
    async def test_registers_as_relay(self):
        worker = RelayTarget()
        client = MasterClient("ws://127.0.0.1:9", worker)
        self.assertIs(worker.relay, client)
        self.assertFalse(client.connected)

    async def test_publish_while_disconnected_is_dropped(self):
        client = MasterClient("ws://127.0.0.1:9", RelayTarget())
        with self.assertLogs(level="WARNING"):
            self.assertFalse(await client.publish(RequestKind.ADD_WORD, "alice", {"success": True}))

    async def test_rejected_handshake_is_logged_and_retried(self):
        async with NotFoundServer() as server:
            client = MasterClient(server.uri, RelayTarget(), retry_delay=0.05)
            with self.assertLogs(level="ERROR") as logs:
                async with client:
                    await wait_until(lambda: server.requests >= 2)
                    self.assertFalse(client._task.done())
                    self.assertFalse(client.connected)
            self.assertTrue(any("retrying" in line for line in logs.output))
            self.assertIsNone(client._task)

    async def test_failing_delivery_keeps_listening(self):
        worker = RelayTarget()
        calls = []

        async def failing_relay_received(kind, username, res):
            calls.append(username)
            raise RuntimeError("session registry is broken")

        worker.relay_received = failing_relay_received
        client = MasterClient("ws://127.0.0.1:9", worker)
        message = '{"event": "add word relay echo", "data": {"username": "alice", "res": {"success": true}}}'
        with self.assertLogs(level="ERROR"):
            await client._handle_message(message)
        self.assertEqual(calls, ["alice"])

    async def test_malformed_echo_is_skipped(self):
        worker = RelayTarget()
        client = MasterClient("ws://127.0.0.1:9", worker)
        with self.assertLogs(level="WARNING"):
            await client._handle_message('{"event": "add word relay", "data": {}}')
        self.assertEqual(worker.received, [])


if __name__ == "__main__":
    unittest.main()
