import unittest

from relay_hub import RelayHub


class RecordingWorker:
    def __init__(self, name):
        self.name = name
        self.received = []

    async def send(self, event, data):
        self.received.append((event, data))

    def __repr__(self):
        return self.name


class RelayHubTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.hub = RelayHub()
        self.workers = [RecordingWorker(f"worker{i}") for i in range(3)]
        for worker in self.workers:
            self.hub.worker_connected(worker)

    async def test_relay_goes_to_every_other_worker(self):
        data = {"username": "alice", "res": {"success": True, "word": "fox"}}
        delivered = await self.hub.relay(self.workers[0], "add word relay", data)
        self.assertEqual(delivered, 2)
        self.assertEqual(self.workers[0].received, [])
        for worker in self.workers[1:]:
            self.assertEqual(worker.received, [("add word relay echo", data)])

    async def test_unknown_events_are_dropped(self):
        delivered = await self.hub.relay(self.workers[0], "login relay", {})
        self.assertEqual(delivered, 0)
        self.assertTrue(all(not worker.received for worker in self.workers))

    async def test_disconnected_workers_receive_nothing(self):
        self.hub.worker_disconnected(self.workers[2])
        self.hub.worker_disconnected(self.workers[2])
        self.assertEqual(self.hub.worker_count, 2)
        await self.hub.relay(self.workers[0], "remove word relay", {"username": "alice", "res": {}})
        self.assertEqual(len(self.workers[1].received), 1)
        self.assertEqual(self.workers[2].received, [])

    async def test_lone_worker_relays_to_nobody(self):
        hub = RelayHub()
        hub.worker_connected(self.workers[0])
        self.assertEqual(await hub.relay(self.workers[0], "add words relay", {}), 0)


if __name__ == "__main__":
    unittest.main()
