import unittest

from validation import is_valid_username, is_valid_password, is_valid_word


class ValidationTests(unittest.TestCase):
    def test_usernames(self):
        for username in ("alice", "Bob_1", "a" + "b" * 31, "x0000"):
            self.assertTrue(is_valid_username(username), username)
        for username in ("abcd", "1alice", "_alice", "a" + "b" * 32, "ali ce", "alice!", "", "alice\n"):
            self.assertFalse(is_valid_username(username), username)

    def test_passwords(self):
        for password in ("hunter", "pass word", 'p"£$%^&*()', "a" * 31):
            self.assertTrue(is_valid_password(password), password)
        for password in ("four", "a" * 32, "under_score", "tab\tbed", "pässwörd"):
            self.assertFalse(is_valid_password(password), password)

    def test_words(self):
        self.assertTrue(is_valid_word("abc-def"))
        self.assertTrue(is_valid_word("a"))
        self.assertTrue(is_valid_word("a" * 31))
        self.assertFalse(is_valid_word("ab_cd"))
        self.assertFalse(is_valid_word("a" * 32))
        self.assertFalse(is_valid_word(""))
        self.assertFalse(is_valid_word("two words"))
        self.assertFalse(is_valid_word("cat2"))

    def test_non_strings_are_invalid(self):
        self.assertFalse(is_valid_username(None))
        self.assertFalse(is_valid_password(12345))
        self.assertFalse(is_valid_word(["cat"]))


if __name__ == "__main__":
    unittest.main()
