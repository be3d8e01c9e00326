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
import contextlib
import logging
import sqlite3
from typing import AsyncIterator, Dict, Iterator, List

from hashing.password import PasswordHasher
from models import AccountCreation, CredentialCheck, Word, WordChange

USERNAME_TAKEN = "usernameTaken"
NO_ACCOUNT = "noAccount"
WORD_ALREADY_ADDED = "wordAlreadyAdded"
WORD_NOT_YET_ADDED = "wordNotYetAdded"

SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS accounts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        password_digest TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS words (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        account_id INTEGER NOT NULL REFERENCES accounts (id) ON DELETE CASCADE,
        text TEXT NOT NULL,
        UNIQUE (account_id, text)
    )
    """,
)


class StoreError(Exception): pass


class CredentialStore:
    """
    Accounts and their words, persisted in sqlite.

    Every call opens its own connection and runs in a worker thread so the
    event loop never blocks on disk or on password hashing. Mutations for one
    username are serialized with a per-username lock, which makes each
    check-then-write pair atomic for that account. A lock is dropped once no
    call holds or waits on it.
    """

    def __init__(self, db_path: str, hasher: PasswordHasher, timeout: float = 5.0):
        self._db_path = db_path
        self._hasher = hasher
        self._timeout = timeout
        # username -> [lock, number of callers holding or waiting on it]
        self._locks: Dict[str, list] = {}

    @contextlib.contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        except sqlite3.Error as e:
            raise StoreError(f"Could not open database {self._db_path}") from e
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreError(f"Database query failed: {e}") from e
        finally:
            conn.close()

    @contextlib.asynccontextmanager
    async def _locked(self, username: str) -> AsyncIterator[None]:
        entry = self._locks.setdefault(username, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[username]

    @property
    def locked_usernames(self) -> int:
        """
        Usernames with a mutation running or waiting.
        """
        return len(self._locks)

    @staticmethod
    def _account_id(conn: sqlite3.Connection, username: str):
        row = conn.execute("SELECT id FROM accounts WHERE username = ?", (username,)).fetchone()
        return None if row is None else row[0]

    @staticmethod
    def _contains_word(conn: sqlite3.Connection, account_id: int, word: str) -> bool:
        row = conn.execute(
            "SELECT 1 FROM words WHERE account_id = ? AND text = ?", (account_id, word)
        ).fetchone()
        return row is not None

    async def initialize(self):
        await asyncio.to_thread(self._initialize)
        logging.debug(f"Database {self._db_path} ready")

    def _initialize(self):
        with self._connect() as conn:
            for statement in SCHEMA:
                conn.execute(statement)

    async def create_account(self, username: str, password: str) -> AccountCreation:
        async with self._locked(username):
            return await asyncio.to_thread(self._create_account, username, password)

    def _create_account(self, username: str, password: str) -> AccountCreation:
        with self._connect() as conn:
            if self._account_id(conn, username) is not None:
                return AccountCreation(created=False, reason=USERNAME_TAKEN)
            try:
                digest = self._hasher.hash(password)
            except Exception as e:
                raise StoreError("Password hashing failed") from e
            try:
                conn.execute(
                    "INSERT INTO accounts (username, password_digest) VALUES (?, ?)",
                    (username, digest),
                )
            except sqlite3.IntegrityError:
                # another process created it between the check and the insert
                return AccountCreation(created=False, reason=USERNAME_TAKEN)
        logging.info(f"Created account {username=}")
        return AccountCreation(created=True)

    async def verify_credentials(self, username: str, password: str) -> CredentialCheck:
        return await asyncio.to_thread(self._verify_credentials, username, password)

    def _verify_credentials(self, username: str, password: str) -> CredentialCheck:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT password_digest FROM accounts WHERE username = ?", (username,)
            ).fetchone()
        if row is None:
            return CredentialCheck(username_exists=False)
        return CredentialCheck(username_exists=True, password_matches=self._hasher.verify(password, row[0]))

    async def add_word(self, username: str, word: str) -> WordChange:
        async with self._locked(username):
            return await asyncio.to_thread(self._add_word, username, word)

    def _add_word(self, username: str, word: str) -> WordChange:
        with self._connect() as conn:
            account_id = self._account_id(conn, username)
            if account_id is None:
                return WordChange(changed=False, reason=NO_ACCOUNT)
            if self._contains_word(conn, account_id, word):
                return WordChange(changed=False, reason=WORD_ALREADY_ADDED)
            cursor = conn.execute(
                "INSERT OR IGNORE INTO words (account_id, text) VALUES (?, ?)", (account_id, word)
            )
            if cursor.rowcount != 1:
                # inserted by another process since the check
                return WordChange(changed=False, reason=WORD_ALREADY_ADDED)
            return WordChange(changed=True)

    async def remove_word(self, username: str, word: str) -> WordChange:
        async with self._locked(username):
            return await asyncio.to_thread(self._remove_word, username, word)

    def _remove_word(self, username: str, word: str) -> WordChange:
        with self._connect() as conn:
            account_id = self._account_id(conn, username)
            if account_id is None:
                return WordChange(changed=False, reason=NO_ACCOUNT)
            cursor = conn.execute(
                "DELETE FROM words WHERE account_id = ? AND text = ?", (account_id, word)
            )
            if cursor.rowcount == 0:
                return WordChange(changed=False, reason=WORD_NOT_YET_ADDED)
            return WordChange(changed=True)

    async def list_words(self, username: str) -> List[Word]:
        return await asyncio.to_thread(self._list_words, username)

    def _list_words(self, username: str) -> List[Word]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT words.id, words.text FROM words "
                "JOIN accounts ON accounts.id = words.account_id "
                "WHERE accounts.username = ? ORDER BY words.id",
                (username,),
            ).fetchall()
        return [Word(id=row[0], text=row[1]) for row in rows]

    async def word_exists(self, username: str, word: str) -> bool:
        return await asyncio.to_thread(self._word_exists, username, word)

    def _word_exists(self, username: str, word: str) -> bool:
        with self._connect() as conn:
            account_id = self._account_id(conn, username)
            return account_id is not None and self._contains_word(conn, account_id, word)
