import os
import tempfile
import unittest

from config import Config, ConfigurationLoadError


class ConfigTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmp.name, "config.toml")

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def write(self, text):
        with open(self.path, "w") as config_file:
            config_file.write(text)

    async def test_defaults_fill_missing_sections(self):
        self.write('[worker]\nport = 4321\n')
        config = Config(self.path)
        await config.initialize()
        self.assertTrue(config.config_opened)
        self.assertEqual(config.config["worker"], {"host": "", "port": 4321})
        self.assertEqual(config.config["master"], {"host": "localhost", "port": 8000})
        self.assertEqual(config.config["database"]["path"], "./words.db")
        self.assertEqual(config.config["passwords"], {"scrypt_n": 16384, "scrypt_r": 8, "scrypt_p": 1})
        self.assertEqual(config.config["words"]["max_words_per_request"], 50)
        self.assertEqual(config.master_uri, "ws://localhost:8000")

    async def test_example_config_is_valid(self):
        example = os.path.join(os.path.dirname(__file__), os.pardir, ".example", "config.toml")
        config = Config(example)
        await config.initialize()
        self.assertEqual(config.config["worker"]["port"], 1234)

    async def test_missing_file(self):
        config = Config(os.path.join(self.tmp.name, "nope.toml"))
        with self.assertLogs(level="WARNING"), self.assertRaises(ConfigurationLoadError):
            await config.initialize()

    async def test_toml_syntax_error(self):
        self.write("[worker\nport = 1")
        with self.assertLogs(level="WARNING"), self.assertRaises(ConfigurationLoadError):
            await Config(self.path).initialize()

    async def test_schema_errors(self):
        for text in (
            '[worker]\nport = 70000\n',
            '[master]\nport = "8000"\n',
            '[passwords]\nscrypt_n = 1000\n',
            '[words]\nmax_words_per_request = 0\n',
            '[database]\npath = ""\n',
            '[unknown]\nkey = 1\n',
        ):
            self.write(text)
            with self.assertLogs(level="WARNING"), self.assertRaises(ConfigurationLoadError, msg=text):
                await Config(self.path).initialize()


if __name__ == "__main__":
    unittest.main()
