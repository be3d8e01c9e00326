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

import re

USERNAME_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_]{4,31}")
PASSWORD_PATTERN = re.compile(r"[A-Za-z0-9 !\"£$%^&*()]{5,31}")
WORD_PATTERN = re.compile(r"[A-Za-z-]{1,31}")


def is_valid_username(username: str) -> bool:
    return isinstance(username, str) and USERNAME_PATTERN.fullmatch(username) is not None


def is_valid_password(password: str) -> bool:
    return isinstance(password, str) and PASSWORD_PATTERN.fullmatch(password) is not None


def is_valid_word(word: str) -> bool:
    return isinstance(word, str) and WORD_PATTERN.fullmatch(word) is not None
