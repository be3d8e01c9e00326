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
import enum
import json
from typing import List, Optional

import voluptuous.error
from voluptuous import Schema, Required, Any, REMOVE_EXTRA

from models import Word

MALFORMED_REQUEST_EVENT = "malformed request"


class MalformedPacket(Exception): pass


class RequestKind(enum.Enum):
    LOGIN = "login"
    LOGOUT = "logout"
    CREATE_ACCOUNT = "create account"
    ADD_WORD = "add word"
    ADD_WORDS = "add words"
    REMOVE_WORD = "remove word"
    GET_WORDS = "get words"

    @property
    def request_event(self) -> str:
        return f"{self.value} request"

    @property
    def response_event(self) -> str:
        return f"{self.value} response"

    @property
    def relay_event(self) -> str:
        return f"{self.value} relay"

    @property
    def echo_event(self) -> str:
        return f"{self.value} relay echo"


# only successful mutations travel through the master
RELAYED_KINDS = (RequestKind.ADD_WORD, RequestKind.ADD_WORDS, RequestKind.REMOVE_WORD)
KINDS_BY_REQUEST_EVENT = {kind.request_event: kind for kind in RequestKind}
KINDS_BY_RESPONSE_EVENT = {kind.response_event: kind for kind in RequestKind}
KINDS_BY_RELAY_EVENT = {kind.relay_event: kind for kind in RELAYED_KINDS}
KINDS_BY_ECHO_EVENT = {kind.echo_event: kind for kind in RELAYED_KINDS}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _encode(value):
    if dataclasses.is_dataclass(value):
        return {
            _camel(field.name): _encode(getattr(value, field.name))
            for field in dataclasses.fields(value)
            if getattr(value, field.name) is not None
        }
    if isinstance(value, list):
        return [_encode(item) for item in value]
    return value


class Packet:
    """
    Fields left as None are omitted; names go out in camelCase.
    """

    def to_packet(self) -> dict:
        return _encode(self)


# Requests

@dataclasses.dataclass
class CredentialsRequest(Packet):
    username: str
    password: str


@dataclasses.dataclass
class WordRequest(Packet):
    word: str


@dataclasses.dataclass
class WordsRequest(Packet):
    words: List[str]


@dataclasses.dataclass
class EmptyRequest(Packet):
    pass


_credentials_schema = Schema({Required("username"): str, Required("password"): str}, extra=REMOVE_EXTRA)
_word_schema = Schema({Required("word"): str}, extra=REMOVE_EXTRA)
_words_schema = Schema({Required("words"): [str]}, extra=REMOVE_EXTRA)
_empty_schema = Schema(Any(None, Schema({}, extra=REMOVE_EXTRA)))

REQUEST_SCHEMAS = {
    RequestKind.LOGIN: (_credentials_schema, CredentialsRequest),
    RequestKind.CREATE_ACCOUNT: (_credentials_schema, CredentialsRequest),
    RequestKind.LOGOUT: (_empty_schema, EmptyRequest),
    RequestKind.GET_WORDS: (_empty_schema, EmptyRequest),
    RequestKind.ADD_WORD: (_word_schema, WordRequest),
    RequestKind.REMOVE_WORD: (_word_schema, WordRequest),
    RequestKind.ADD_WORDS: (_words_schema, WordsRequest),
}

relay_schema = Schema({Required("username"): str, Required("res"): dict}, extra=REMOVE_EXTRA)


# Responses

@dataclasses.dataclass
class Response(Packet):
    success: bool = False


@dataclasses.dataclass
class LoginResponse(Response):
    already_logged_in: Optional[bool] = None
    invalid_username: Optional[bool] = None
    invalid_password: Optional[bool] = None
    incorrect_username: Optional[bool] = None
    incorrect_password: Optional[bool] = None


@dataclasses.dataclass
class LogoutResponse(Response):
    was_logged_in: bool = False


@dataclasses.dataclass
class CreateAccountResponse(Response):
    invalid_username: Optional[bool] = None
    invalid_password: Optional[bool] = None
    username_taken: Optional[bool] = None


@dataclasses.dataclass
class AddWordResponse(Response):
    word: str = ""
    is_logged_in: bool = False
    is_valid_word: bool = False
    word_already_added: bool = False


@dataclasses.dataclass
class RemoveWordResponse(Response):
    word: str = ""
    is_logged_in: bool = False
    is_valid_word: bool = False
    word_not_yet_added: bool = False


@dataclasses.dataclass
class AddWordsItem(Response):
    word: str = ""
    is_valid_word: bool = False
    word_already_added: bool = False


@dataclasses.dataclass
class AddWordsResponse(Response):
    is_logged_in: bool = False
    invalid_number_of_words: bool = False
    add_word_responses: Optional[List[AddWordsItem]] = None


@dataclasses.dataclass
class GetWordsResponse(Response):
    is_logged_in: bool = False
    words: Optional[List[Word]] = None


# Envelopes

def encode_packet(event: str, data: Optional[dict] = None, packet_id=None) -> str:
    packet = {"event": event, "data": data if data is not None else {}}
    if packet_id is not None:
        packet["id"] = packet_id
    return json.dumps(packet)


def decode_packet(message) -> dict:
    if not isinstance(message, str):
        raise MalformedPacket("binary frames are not supported")
    try:
        packet = json.loads(message)
    except json.JSONDecodeError as e:
        raise MalformedPacket("frame is not JSON") from e
    if not isinstance(packet, dict) or not isinstance(packet.get("event"), str):
        raise MalformedPacket("frame has no event")
    return packet


def decode_request(packet: dict):
    """
    Returns (kind, request) for a decoded envelope.

    Raises MalformedPacket when the event is not a request event or its data
    does not fit the request schema.
    """
    kind = KINDS_BY_REQUEST_EVENT.get(packet["event"])
    if kind is None:
        raise MalformedPacket(f"unknown event {packet['event']!r}")
    schema, request_type = REQUEST_SCHEMAS[kind]
    try:
        data = schema(packet.get("data"))
    except voluptuous.error.Invalid as e:
        raise MalformedPacket(f"bad data for {packet['event']!r}: {e}") from e
    return kind, request_type(**(data or {}))


def decode_relay(packet: dict, kinds: dict):
    """
    Returns (kind, username, res) for a relay or relay echo envelope.
    """
    kind = kinds.get(packet["event"])
    if kind is None:
        raise MalformedPacket(f"unknown relay event {packet['event']!r}")
    try:
        data = relay_schema(packet.get("data"))
    except voluptuous.error.Invalid as e:
        raise MalformedPacket(f"bad relay data for {packet['event']!r}: {e}") from e
    return kind, data["username"], data["res"]
