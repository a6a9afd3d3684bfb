"""Tests for dashboard password hashing."""

import unittest

from traefik_setup.credentials import (
    apr1_hash,
    basic_auth_user,
    hash_password,
    sha_hash,
    split_basic_auth_user,
    validate_password,
    verify_password,
)
from traefik_setup.errors import ValidationError


class TestValidatePassword(unittest.TestCase):
    def test_matching_passwords_pass(self):
        self.assertEqual(validate_password("secret", "secret"), "secret")

    def test_mismatch_is_rejected(self):
        with self.assertRaises(ValidationError):
            validate_password("secret", "secret2")

    def test_empty_password_is_rejected(self):
        with self.assertRaises(ValidationError):
            validate_password("", "")
        with self.assertRaises(ValidationError):
            validate_password(None, None)


class TestHashing(unittest.TestCase):
    def test_sha_matches_htpasswd_format(self):
        self.assertEqual(sha_hash("password"), "{SHA}W6ph5Mm5Pz8GgiULbPgzG37mj9g=")

    def test_apr1_format(self):
        hashed = apr1_hash("secret", salt="abcdefgh")
        self.assertTrue(hashed.startswith("$apr1$abcdefgh$"))
        self.assertEqual(len(hashed.rsplit("$", 1)[1]), 22)

    def test_apr1_matches_openssl_output(self):
        # openssl passwd -apr1 -salt abcdefgh secret
        expected = "$apr1$abcdefgh$h9FWgUz3n9YxylKLlR5SQ/"
        self.assertEqual(apr1_hash("secret", "abcdefgh"), expected)
        self.assertTrue(verify_password("secret", expected))
        self.assertFalse(verify_password("secret2", expected))

    def test_apr1_is_deterministic_for_a_salt(self):
        self.assertEqual(apr1_hash("secret", "saltsalt"), apr1_hash("secret", "saltsalt"))
        self.assertNotEqual(apr1_hash("secret", "saltsalt"), apr1_hash("secret", "tlastlas"))

    def test_apr1_random_salt(self):
        self.assertNotEqual(apr1_hash("secret"), apr1_hash("secret"))

    def test_unknown_scheme(self):
        with self.assertRaises(ValidationError):
            hash_password("secret", "bcrypt")

    def test_verify_both_schemes(self):
        for scheme in ("apr1", "sha"):
            hashed = hash_password("secret", scheme)
            self.assertTrue(verify_password("secret", hashed), scheme)
            self.assertFalse(verify_password("secret2", hashed), scheme)

    def test_verify_unknown_format(self):
        self.assertFalse(verify_password("secret", "plain-text"))


class TestBasicAuthUser(unittest.TestCase):
    def test_entry_round_trip(self):
        entry = basic_auth_user("traefik", "secret")
        user, hashed = split_basic_auth_user(entry)
        self.assertEqual(user, "traefik")
        self.assertTrue(hashed.startswith("$apr1$"))
        self.assertTrue(verify_password("secret", hashed))


if __name__ == "__main__":
    unittest.main()
