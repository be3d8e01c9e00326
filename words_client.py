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
import argparse
import asyncio
import logging

import websockets
from websockets.asyncio.client import connect, ClientConnection

from logger import setup_logging, console
from protocol import (
    RequestKind, MalformedPacket, MALFORMED_REQUEST_EVENT, KINDS_BY_RESPONSE_EVENT,
    encode_packet, decode_packet,
)

EXIT = "exit"


class CommandError(Exception): pass


def parse_command(line: str):
    """
    Turns a typed command into (event, data). Returns (EXIT, None) for exit.
    """
    tokens = line.split()
    if not tokens:
        raise CommandError("Empty command.")

    if tokens == ["exit"]:
        return EXIT, None
    if tokens == ["logout"]:
        return RequestKind.LOGOUT.request_event, {}
    if tokens == ["get", "words"]:
        return RequestKind.GET_WORDS.request_event, {}
    if tokens[0] == "login":
        if len(tokens) != 3:
            raise CommandError("Usage: login <username> <password>")
        return RequestKind.LOGIN.request_event, {"username": tokens[1], "password": tokens[2]}
    if tokens[:2] == ["create", "account"]:
        if len(tokens) != 4:
            raise CommandError("Usage: create account <username> <password>")
        return RequestKind.CREATE_ACCOUNT.request_event, {"username": tokens[2], "password": tokens[3]}
    if tokens[:2] == ["add", "word"]:
        if len(tokens) != 3:
            raise CommandError("Usage: add word <word>")
        return RequestKind.ADD_WORD.request_event, {"word": tokens[2]}
    if tokens[:2] == ["add", "words"]:
        if len(tokens) < 3:
            raise CommandError("Usage: add words <word> [<word> ...]")
        return RequestKind.ADD_WORDS.request_event, {"words": tokens[2:]}
    if tokens[:2] == ["remove", "word"]:
        if len(tokens) != 3:
            raise CommandError("Usage: remove word <word>")
        return RequestKind.REMOVE_WORD.request_event, {"word": tokens[2]}

    raise CommandError(f"Unknown command: {line.strip()}")


# most specific flag first; the first one set wins
FAILURE_MESSAGES = {
    RequestKind.LOGIN: (
        ("alreadyLoggedIn", "Login unsuccessful. Already logged in."),
        ("invalidUsername", "Login unsuccessful. Username invalid."),
        ("invalidPassword", "Login unsuccessful. Password invalid."),
        ("incorrectUsername", "Login unsuccessful. Username incorrect."),
        ("incorrectPassword", "Login unsuccessful. Password incorrect."),
    ),
    RequestKind.CREATE_ACCOUNT: (
        ("invalidUsername", "Account not created. Username invalid."),
        ("invalidPassword", "Account not created. Password invalid."),
        ("usernameTaken", "Account not created. Username taken."),
    ),
    RequestKind.ADD_WORD: (
        ("!isLoggedIn", "Word not added. Not logged in."),
        ("!isValidWord", "Word not added. Word invalid."),
        ("wordAlreadyAdded", "Word not added. Word already added."),
    ),
    RequestKind.ADD_WORDS: (
        ("!isLoggedIn", "Words not added. Not logged in."),
        ("invalidNumberOfWords", "Words not added. Invalid number of words."),
    ),
    RequestKind.REMOVE_WORD: (
        ("!isLoggedIn", "Word not removed. Not logged in."),
        ("!isValidWord", "Word not removed. Word invalid."),
        ("wordNotYetAdded", "Word not removed. Word not yet added."),
    ),
    RequestKind.GET_WORDS: (
        ("!isLoggedIn", "Could not get words. Not logged in."),
    ),
    RequestKind.LOGOUT: (
        ("!wasLoggedIn", "Logout unsuccessful. Not logged in."),
    ),
}

UNKNOWN_ERRORS = {
    RequestKind.LOGIN: "Unknown login error.",
    RequestKind.LOGOUT: "Unknown logout error.",
    RequestKind.CREATE_ACCOUNT: "Unknown account creation error.",
    RequestKind.ADD_WORD: "Unknown error adding word.",
    RequestKind.ADD_WORDS: "Unknown error adding words.",
    RequestKind.REMOVE_WORD: "Unknown error removing word.",
    RequestKind.GET_WORDS: "Unknown error getting words.",
}


def _flag_set(data: dict, flag: str) -> bool:
    if flag.startswith("!"):
        return data.get(flag[1:]) is False
    return data.get(flag) is True


def _describe_success(kind: RequestKind, data: dict) -> str:
    if kind is RequestKind.LOGIN:
        return "Logged in."
    if kind is RequestKind.LOGOUT:
        return "Logged out."
    if kind is RequestKind.CREATE_ACCOUNT:
        return "Account created."
    if kind is RequestKind.ADD_WORD:
        return f"Word added: {data.get('word')}"
    if kind is RequestKind.REMOVE_WORD:
        return f"Word removed: {data.get('word')}"
    if kind is RequestKind.ADD_WORDS:
        added = [item.get("word") for item in data.get("addWordResponses", []) if item.get("success")]
        return f"Words added: {', '.join(added)}"
    words = sorted(word.get("text", "") for word in data.get("words", []))
    return f"Words: {', '.join(words)}" if words else "No words yet."


def describe_response(event: str, data: dict) -> str:
    if event == MALFORMED_REQUEST_EVENT:
        return f"Server rejected a malformed {data.get('event')!r}."
    kind = KINDS_BY_RESPONSE_EVENT.get(event)
    if kind is None:
        return f"Unexpected event {event!r}."
    if data.get("success") is True:
        return _describe_success(kind, data)
    for flag, message in FAILURE_MESSAGES[kind]:
        if _flag_set(data, flag):
            return message
    return UNKNOWN_ERRORS[kind]


async def receive_responses(websocket: ClientConnection):
    try:
        async for message in websocket:
            try:
                packet = decode_packet(message)
            except MalformedPacket as e:
                logging.warning(f"Server sent a malformed frame: {e}")
                continue
            console.print(describe_response(packet["event"], packet.get("data") or {}))
    except websockets.exceptions.ConnectionClosed:
        pass
    logging.info("Disconnected from worker node.")


async def main(host: str, port: int):
    uri = f"ws://{host}:{port}"
    try:
        websocket = await connect(uri)
    except OSError as e:
        logging.error(f"Could not connect to {uri}: {e}")
        return
    logging.info("Connected to worker node.")

    receiver = asyncio.create_task(receive_responses(websocket))
    try:
        while not receiver.done():
            line = await asyncio.to_thread(console.input, "> ")
            try:
                event, data = parse_command(line)
            except CommandError as e:
                console.print(str(e))
                continue
            if event == EXIT:
                break
            try:
                await websocket.send(encode_packet(event, data))
            except websockets.exceptions.ConnectionClosed:
                break
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        await websocket.close()
        await receiver


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Diagnostic words client")
    parser.add_argument("host", nargs="?", default="localhost")
    parser.add_argument("port", nargs="?", type=int, default=1234)
    args = parser.parse_args()

    setup_logging()
    asyncio.run(main(args.host, args.port))
