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
from pathlib import Path

import aiofiles
import tomlkit
import tomlkit.exceptions
import voluptuous.error
from voluptuous import Schema, Optional, All, Range, Length


class ConfigurationLoadError(Exception): pass


class Config:
    config: dict
    config_opened: bool = False

    def __init__(self, config_location: Path):
        self.config_location = config_location

        port = All(int, Range(min=0, max=65535))
        self.config_schema = Schema({
            Optional('worker', default={}): {
                Optional('host', default=""): str,
                Optional('port', default=1234): port,
            },
            Optional('master', default={}): {
                Optional('host', default="localhost"): All(str, Length(min=1)),
                Optional('port', default=8000): port,
            },
            Optional('database', default={}): {
                Optional('path', default="./words.db"): All(str, Length(min=1)),
            },
            Optional('passwords', default={}): {
                Optional('scrypt_n', default=2 ** 14): All(int, self.power_of_two_validator),
                Optional('scrypt_r', default=8): All(int, Range(min=1)),
                Optional('scrypt_p', default=1): All(int, Range(min=1)),
            },
            Optional('words', default={}): {
                Optional('max_words_per_request', default=50): All(int, Range(min=1)),
            },
        })

    @staticmethod
    def power_of_two_validator(n: int) -> int:
        if n < 2 or n & (n - 1):
            raise voluptuous.error.Invalid(message="Must be a power of two, at least 2.")
        return n

    async def initialize(self):
        try:
            async with aiofiles.open(self.config_location, 'r') as config_file:
                file_data = await config_file.read()
                document = tomlkit.parse(file_data)
                logging.debug("Loaded Configuration without toml format error")
                logging.debug("Validating against Schema.")
                self.config = self.config_schema(document.unwrap())
                self.config_opened = True
                logging.debug("Validated against Schema.")
        except FileNotFoundError as e:
            logging.exception(e)
            logging.warning(
                f"Could not find {self.config_location}. Copy from .example/config.toml to {self.config_location}")
            raise ConfigurationLoadError() from e
        except IOError as e:
            logging.exception(e)
            logging.warning(f"Could not open file {self.config_location}")
            raise ConfigurationLoadError() from e
        except tomlkit.exceptions.ParseError as e:
            logging.exception(e)
            logging.warning(f"Configuration in {self.config_location} is invalid")
            raise ConfigurationLoadError() from e
        except voluptuous.error.MultipleInvalid as e:
            logging.exception(e)
            logging.warning(f"Configuration in {self.config_location} does not match expected format")
            logging.warning(f"Issue configuration item: {e.path}")
            raise ConfigurationLoadError() from e

        logging.info(f"Configuration loaded.")

    @property
    def master_uri(self) -> str:
        return f"ws://{self.config['master']['host']}:{self.config['master']['port']}"
