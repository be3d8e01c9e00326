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
from typing import Optional

from credential_store import CredentialStore, StoreError, WORD_ALREADY_ADDED, WORD_NOT_YET_ADDED
from protocol import (
    RequestKind,
    CredentialsRequest, WordRequest, WordsRequest,
    LoginResponse, LogoutResponse, CreateAccountResponse,
    AddWordResponse, RemoveWordResponse, AddWordsResponse, AddWordsItem, GetWordsResponse,
)
from session_registry import SessionRegistry
from validation import is_valid_username, is_valid_password, is_valid_word


class WorkerNode:
    """
    Request handling shared by every client session on one worker.

    Sessions handed to the worker need `is_open` and `async send(event, data)`.
    The relay needs `async publish(kind, username, res)`.
    """

    _relay: object = None

    def __init__(self, store: CredentialStore, sessions: SessionRegistry, max_words_per_request: int = 50):
        self._store = store
        self._sessions = sessions
        self._max_words_per_request = max_words_per_request

    def set_relay(self, relay):
        self._relay = relay

    async def login(self, session, request: CredentialsRequest) -> LoginResponse:
        response = LoginResponse()
        if self._sessions.is_logged_in(session):
            response.already_logged_in = True
            return response

        if not is_valid_username(request.username):
            response.invalid_username = True
        if not is_valid_password(request.password):
            response.invalid_password = True
        if response.invalid_username or response.invalid_password:
            return response

        try:
            check = await self._store.verify_credentials(request.username, request.password)
        except StoreError as e:
            logging.exception(e)
            logging.error(f"Could not verify credentials for {request.username}")
            return response

        if not check.username_exists:
            response.incorrect_username = True
            response.incorrect_password = True
            return response
        if not check.password_matches:
            response.incorrect_password = True
            return response

        if not session.is_open:
            logging.debug(f"Session for {request.username} closed during login")
            return response
        if self._sessions.is_logged_in(session):
            response.already_logged_in = True
            return response

        self._sessions.login(request.username, session)
        response.success = True
        return response

    def logout(self, session) -> LogoutResponse:
        was_logged_in = self._sessions.is_logged_in(session)
        removed = self._sessions.logout(session)
        return LogoutResponse(success=was_logged_in and removed, was_logged_in=was_logged_in)

    def disconnected(self, session) -> None:
        if self._sessions.logout(session):
            logging.debug(f"Cleaned up session after disconnect")

    async def create_account(self, request: CredentialsRequest) -> CreateAccountResponse:
        response = CreateAccountResponse()
        if not is_valid_username(request.username):
            response.invalid_username = True
        if not is_valid_password(request.password):
            response.invalid_password = True
        if response.invalid_username or response.invalid_password:
            return response

        try:
            creation = await self._store.create_account(request.username, request.password)
        except StoreError as e:
            logging.exception(e)
            logging.error(f"Could not create account {request.username}")
            return response

        if not creation.created:
            response.username_taken = True
            return response
        response.success = True
        return response

    async def add_word(self, session, request: WordRequest) -> AddWordResponse:
        response = AddWordResponse(word=request.word)
        username = self._sessions.username_for(session)
        if username is None:
            return response
        response.is_logged_in = True
        if not is_valid_word(request.word):
            return response
        response.is_valid_word = True

        try:
            change = await self._store.add_word(username, request.word)
        except StoreError as e:
            logging.exception(e)
            logging.error(f"Could not add word {request.word!r} for {username}")
            return response
        response.success = change.changed
        response.word_already_added = change.reason == WORD_ALREADY_ADDED

        if response.success:
            await self._propagate(RequestKind.ADD_WORD, username, response.to_packet(), session)
        return response

    async def remove_word(self, session, request: WordRequest) -> RemoveWordResponse:
        response = RemoveWordResponse(word=request.word)
        username = self._sessions.username_for(session)
        if username is None:
            return response
        response.is_logged_in = True
        if not is_valid_word(request.word):
            return response
        response.is_valid_word = True

        try:
            change = await self._store.remove_word(username, request.word)
        except StoreError as e:
            logging.exception(e)
            logging.error(f"Could not remove word {request.word!r} for {username}")
            return response
        response.success = change.changed
        response.word_not_yet_added = change.reason == WORD_NOT_YET_ADDED

        if response.success:
            await self._propagate(RequestKind.REMOVE_WORD, username, response.to_packet(), session)
        return response

    async def add_words(self, session, request: WordsRequest) -> AddWordsResponse:
        response = AddWordsResponse()
        username = self._sessions.username_for(session)
        if username is None:
            return response
        response.is_logged_in = True
        if not 1 <= len(request.words) <= self._max_words_per_request:
            response.invalid_number_of_words = True
            return response

        response.add_word_responses = []
        try:
            for word in request.words:
                item = AddWordsItem(word=word)
                response.add_word_responses.append(item)
                if not is_valid_word(word):
                    continue
                item.is_valid_word = True
                change = await self._store.add_word(username, word)
                item.success = change.changed
                item.word_already_added = change.reason == WORD_ALREADY_ADDED
        except StoreError as e:
            logging.exception(e)
            logging.error(f"Could not add words for {username}")

        response.success = any(item.success for item in response.add_word_responses)
        if response.success:
            await self._propagate(RequestKind.ADD_WORDS, username, response.to_packet(), session)
        return response

    async def get_words(self, session) -> GetWordsResponse:
        response = GetWordsResponse()
        username = self._sessions.username_for(session)
        if username is None:
            return response
        response.is_logged_in = True

        try:
            response.words = await self._store.list_words(username)
        except StoreError as e:
            logging.exception(e)
            logging.error(f"Could not list words for {username}")
            return response
        response.success = True
        return response

    async def _propagate(self, kind: RequestKind, username: str, res: dict, origin: Optional[object]):
        async def push(connection):
            if connection is not origin:
                await connection.send(kind.response_event, res)

        await self._sessions.for_each_connection_of(username, push)
        if self._relay is not None:
            await self._relay.publish(kind, username, res)

    async def relay_received(self, kind: RequestKind, username: str, res: dict):
        """
        A mutation made on another worker; pushed to all of this worker's sessions for username.
        """
        logging.debug(f"Relayed {kind.value} for {username}")
        await self._sessions.for_each_connection_of(
            username, lambda connection: connection.send(kind.response_event, res)
        )
