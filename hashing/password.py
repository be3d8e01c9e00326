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

import binascii
import logging
import secrets

import cryptography.exceptions
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

DIGEST_SCHEME = "scrypt"


class PasswordHasher:
    """
    Salted scrypt digests, stored as "scrypt$n$r$p$salt$key" (hex salt and key).

    The cost parameters are written into every digest, so changing them only
    affects digests created afterwards.
    """

    def __init__(self, n: int = 2 ** 14, r: int = 8, p: int = 1, salt_length: int = 16, key_length: int = 32):
        self._n = n
        self._r = r
        self._p = p
        self._salt_length = salt_length
        self._key_length = key_length

    @staticmethod
    def _kdf(salt: bytes, length: int, n: int, r: int, p: int) -> Scrypt:
        return Scrypt(salt=salt, length=length, n=n, r=r, p=p)

    def hash(self, password: str) -> str:
        salt = secrets.token_bytes(self._salt_length)
        key = self._kdf(salt, self._key_length, self._n, self._r, self._p).derive(password.encode())
        return "$".join((
            DIGEST_SCHEME,
            str(self._n), str(self._r), str(self._p),
            binascii.hexlify(salt).decode(),
            binascii.hexlify(key).decode(),
        ))

    def verify(self, password: str, digest: str) -> bool:
        try:
            scheme, n, r, p, salt, key = digest.split("$")
            if scheme != DIGEST_SCHEME:
                raise ValueError(f"unknown digest scheme {scheme!r}")
            salt, key = binascii.unhexlify(salt), binascii.unhexlify(key)
            kdf = self._kdf(salt, len(key), int(n), int(r), int(p))
        except (ValueError, binascii.Error) as e:
            logging.warning(f"Stored password digest is malformed: {e}")
            return False

        try:
            # constant time comparison inside cryptography
            kdf.verify(password.encode(), key)
        except cryptography.exceptions.InvalidKey:
            return False
        return True
