import json
import unittest

from models import Word
from protocol import (
    RequestKind, MalformedPacket, KINDS_BY_RELAY_EVENT, KINDS_BY_ECHO_EVENT,
    CredentialsRequest, WordRequest, WordsRequest, EmptyRequest,
    LoginResponse, AddWordResponse, AddWordsResponse, AddWordsItem, GetWordsResponse,
    encode_packet, decode_packet, decode_request, decode_relay,
)


class EventNameTests(unittest.TestCase):
    def test_event_names(self):
        self.assertEqual(RequestKind.CREATE_ACCOUNT.request_event, "create account request")
        self.assertEqual(RequestKind.GET_WORDS.response_event, "get words response")
        self.assertEqual(RequestKind.ADD_WORD.relay_event, "add word relay")
        self.assertEqual(RequestKind.REMOVE_WORD.echo_event, "remove word relay echo")

    def test_only_mutations_are_relayed(self):
        self.assertEqual(
            set(KINDS_BY_RELAY_EVENT.values()),
            {RequestKind.ADD_WORD, RequestKind.ADD_WORDS, RequestKind.REMOVE_WORD},
        )
        self.assertNotIn("login relay echo", KINDS_BY_ECHO_EVENT)


class ResponseEncodingTests(unittest.TestCase):
    def test_unset_optional_flags_are_omitted(self):
        response = LoginResponse(incorrect_username=True, incorrect_password=True)
        self.assertEqual(response.to_packet(), {
            "success": False,
            "incorrectUsername": True,
            "incorrectPassword": True,
        })

    def test_word_responses_always_carry_all_fields(self):
        self.assertEqual(AddWordResponse(word="cat").to_packet(), {
            "success": False,
            "word": "cat",
            "isLoggedIn": False,
            "isValidWord": False,
            "wordAlreadyAdded": False,
        })

    def test_nested_values(self):
        response = GetWordsResponse(success=True, is_logged_in=True, words=[Word(id=3, text="cat")])
        self.assertEqual(response.to_packet()["words"], [{"id": 3, "text": "cat"}])

        response = AddWordsResponse(success=True, is_logged_in=True, add_word_responses=[
            AddWordsItem(success=True, word="cat", is_valid_word=True),
        ])
        self.assertEqual(response.to_packet()["addWordResponses"], [
            {"success": True, "word": "cat", "isValidWord": True, "wordAlreadyAdded": False},
        ])


class EnvelopeTests(unittest.TestCase):
    def test_encode_packet(self):
        self.assertEqual(json.loads(encode_packet("logout response", {"success": True})),
                         {"event": "logout response", "data": {"success": True}})
        self.assertEqual(json.loads(encode_packet("get words request", None, 7)),
                         {"event": "get words request", "data": {}, "id": 7})

    def test_decode_packet_rejects_garbage(self):
        for message in ("not json", "[1, 2]", '{"data": {}}', '{"event": 5}', b'{"event": "x"}'):
            with self.assertRaises(MalformedPacket):
                decode_packet(message)

    def test_decode_requests(self):
        kind, request = decode_request({"event": "login request", "data": {
            "username": "alice", "password": "hunter2", "extra": 1,
        }})
        self.assertIs(kind, RequestKind.LOGIN)
        self.assertEqual(request, CredentialsRequest(username="alice", password="hunter2"))

        kind, request = decode_request({"event": "remove word request", "data": {"word": "cat"}})
        self.assertIs(kind, RequestKind.REMOVE_WORD)
        self.assertEqual(request, WordRequest(word="cat"))

        kind, request = decode_request({"event": "add words request", "data": {"words": ["a", "b"]}})
        self.assertEqual(request, WordsRequest(words=["a", "b"]))

        for packet in ({"event": "logout request"}, {"event": "get words request", "data": {"x": 1}}):
            kind, request = decode_request(packet)
            self.assertEqual(request, EmptyRequest())

    def test_decode_request_rejects_bad_data(self):
        for packet in (
            {"event": "shutdown request", "data": {}},
            {"event": "login response", "data": {}},
            {"event": "login request", "data": {"username": "alice"}},
            {"event": "login request", "data": {"username": "alice", "password": 12345}},
            {"event": "add word request", "data": None},
            {"event": "add words request", "data": {"words": "cat"}},
            {"event": "add words request", "data": {"words": ["cat", 3]}},
            {"event": "logout request", "data": "now"},
        ):
            with self.assertRaises(MalformedPacket, msg=packet):
                decode_request(packet)

    def test_decode_relay(self):
        kind, username, res = decode_relay(
            {"event": "add word relay echo", "data": {"username": "alice", "res": {"word": "fox"}}},
            KINDS_BY_ECHO_EVENT,
        )
        self.assertIs(kind, RequestKind.ADD_WORD)
        self.assertEqual((username, res), ("alice", {"word": "fox"}))

        with self.assertRaises(MalformedPacket):
            decode_relay({"event": "add word relay", "data": {"username": "alice", "res": {}}}, KINDS_BY_ECHO_EVENT)
        with self.assertRaises(MalformedPacket):
            decode_relay({"event": "add word relay echo", "data": {"username": "alice"}}, KINDS_BY_ECHO_EVENT)


if __name__ == "__main__":
    unittest.main()
