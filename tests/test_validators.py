"""Unit tests for auth/validators.py -- email shape and password strength.

Covers:
- is_valid_email accepts local@domain.tld and rejects the common malformed shapes
- is_strong_password length, digit and special-character rules
- Non-string input is rejected rather than raising
"""

import pytest

from auth.validators import SPECIAL_CHARACTERS, is_strong_password, is_valid_email


class TestIsValidEmail:
    @pytest.mark.parametrize("value", ["a@b.co", "alice@x.com", "first.last@mail.example.org", "a+tag@b.io"])
    def test_accepts_standard_shapes(self, value: str) -> None:
        assert is_valid_email(value)

    @pytest.mark.parametrize(
        "value",
        ["", "a@b", "a.com", "@b.co", "a@.", "a b@c.com", "a@b c.com", "a@@b.co", "a@b.co ", "alice"],
    )
    def test_rejects_malformed(self, value: str) -> None:
        assert not is_valid_email(value)

    @pytest.mark.parametrize("value", [None, 42, ["a@b.co"]])
    def test_rejects_non_strings(self, value) -> None:
        assert not is_valid_email(value)


class TestIsStrongPassword:
    def test_accepts_digit_and_special(self) -> None:
        assert is_strong_password("Abcdefg1!")

    def test_no_case_requirement(self) -> None:
        assert is_strong_password("abcdefg1!")
        assert is_strong_password("ABCDEFG1!")

    def test_rejects_short(self) -> None:
        """Seven characters is one short, even with a digit and a special character."""
        assert not is_strong_password("Abcde1!")

    def test_rejects_missing_digit(self) -> None:
        assert not is_strong_password("Abcdefgh!")

    def test_rejects_missing_special(self) -> None:
        assert not is_strong_password("Abcdefg1")

    def test_exactly_eight_characters_is_enough(self) -> None:
        assert is_strong_password("abcdef1!")

    @pytest.mark.parametrize("special", list(SPECIAL_CHARACTERS))
    def test_every_listed_special_character_counts(self, special: str) -> None:
        assert is_strong_password(f"abcdefg1{special}")

    def test_unlisted_symbol_does_not_count(self) -> None:
        """Underscore and hyphen are not in the special-character set."""
        assert not is_strong_password("abcdefg1_-")

    def test_rejects_non_strings(self) -> None:
        assert not is_strong_password(None)
        assert not is_strong_password(12345678)
