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

import dataclasses
from typing import Optional


@dataclasses.dataclass
class Word:
    id: int
    text: str


@dataclasses.dataclass
class AccountCreation:
    created: bool
    reason: Optional[str] = None  # "usernameTaken"


@dataclasses.dataclass
class CredentialCheck:
    """
    password_matches is always False when the username does not exist
    """
    username_exists: bool
    password_matches: bool = False


@dataclasses.dataclass
class WordChange:
    """
    Outcome of adding or removing one word. reason is set whenever changed is
    False: "noAccount", "wordAlreadyAdded" or "wordNotYetAdded".
    """
    changed: bool
    reason: Optional[str] = None
