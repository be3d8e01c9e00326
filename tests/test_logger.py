import logging
import sys
import unittest

from logger import setup_logging, LIBRARY_LEVELS


class SetupLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self.excepthook = sys.excepthook
        self.levels = {name: logging.getLogger(name).level for name in LIBRARY_LEVELS}

    def tearDown(self) -> None:
        sys.excepthook = self.excepthook
        for name, level in self.levels.items():
            logging.getLogger(name).setLevel(level)

    def test_noisy_libraries_are_quietened(self):
        setup_logging("DEBUG")
        self.assertEqual(logging.getLogger("websockets").level, logging.INFO)
        self.assertEqual(logging.getLogger("asyncio").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
