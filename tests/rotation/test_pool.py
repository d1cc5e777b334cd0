"""Tests for keyrelay.rotation.pool."""

import pytest

from keyrelay.rotation import OutcomeKind
from keyrelay.rotation.pool import CredentialPool, validate_credential

KEY_A = "csk-aaaaaaaaaaaaaaaaaaaa1111"
KEY_B = "csk-bbbbbbbbbbbbbbbbbbbb2222"
KEY_C = "sk-cccccccccccccccccccccc3333"
KEY_F = "sk-ffffffffffffffffffffffff9999"


@pytest.mark.parametrize(
    "candidate,expected",
    [
        (KEY_A, True),
        (KEY_C, True),
        ("api-0123456789abcdefghij", True),
        ("sk-aaaaaaaaaaaaaaaaaaaaaa", True),
        ("short", False),
        ("xx-aaaaaaaaaaaaaaaaaaaa", False),
        ("csk-short", False),
        ("xyz-aaaaaaaaaaaaaaaaaaaaaaaa", False),
        ("", False),
        (None, False),
        (12345678901234567890, False),
    ],
)
def test_validate_credential(candidate, expected):
    assert validate_credential(candidate) is expected


class TestAvailable:
    def test_fallback_first(self):
        pool = CredentialPool([KEY_A, KEY_B], fallback=KEY_F)
        assert pool.available() == [KEY_F, KEY_A, KEY_B]
        assert pool.credentials == [KEY_A, KEY_B]

    def test_pooled_fallback_not_duplicated(self):
        pool = CredentialPool([KEY_A, KEY_F], fallback=KEY_F)
        assert pool.available() == [KEY_A, KEY_F]

    def test_no_fallback(self):
        assert CredentialPool([KEY_A]).available() == [KEY_A]
        assert CredentialPool().available() == []

    def test_credentials_is_a_copy(self):
        pool = CredentialPool([KEY_A])
        pool.credentials.append(KEY_B)
        assert pool.credentials == [KEY_A]


class TestAdd:
    def test_add(self):
        pool = CredentialPool([KEY_A], fallback=KEY_F)
        outcome = pool.add(KEY_B)
        assert outcome.ok
        assert outcome.index == 2
        assert pool.credentials == [KEY_A, KEY_B]
        assert KEY_B not in outcome.message

    def test_invalid_format(self):
        pool = CredentialPool()
        outcome = pool.add("bogus")
        assert outcome.kind is OutcomeKind.INVALID_FORMAT
        assert outcome.is_error
        assert pool.credentials == []

    def test_duplicate(self):
        pool = CredentialPool([KEY_A])
        outcome = pool.add(KEY_A)
        assert outcome.kind is OutcomeKind.ALREADY_EXISTS
        assert not outcome.is_error
        assert pool.credentials == [KEY_A]

    def test_fallback_counts_as_existing(self):
        pool = CredentialPool([], fallback=KEY_F)
        assert pool.add(KEY_F).kind is OutcomeKind.ALREADY_EXISTS
        assert pool.credentials == []


class TestRemove:
    def test_remove_by_preview(self):
        pool = CredentialPool([KEY_A, KEY_B], fallback=KEY_F)
        outcome = pool.remove("...1111")
        assert outcome.ok
        assert outcome.credential == KEY_A
        assert outcome.index == 1
        assert pool.credentials == [KEY_B]

    def test_remove_by_unicode_ellipsis(self):
        pool = CredentialPool([KEY_A, KEY_B])
        assert pool.remove("…2222").credential == KEY_B

    def test_remove_exact(self):
        pool = CredentialPool([KEY_A, KEY_B])
        outcome = pool.remove(KEY_B)
        assert outcome.index == 1
        assert pool.credentials == [KEY_A]

    def test_not_found(self):
        pool = CredentialPool([KEY_A])
        outcome = pool.remove("zzzz")
        assert outcome.kind is OutcomeKind.NOT_FOUND
        assert pool.credentials == [KEY_A]

    def test_empty_reference(self):
        pool = CredentialPool([KEY_A])
        assert pool.remove("...").kind is OutcomeKind.NOT_FOUND
        assert pool.remove("").kind is OutcomeKind.NOT_FOUND

    def test_fallback_not_removable(self):
        pool = CredentialPool([KEY_A], fallback=KEY_F)
        assert pool.remove("...9999").kind is OutcomeKind.NOT_FOUND
        assert pool.available() == [KEY_F, KEY_A]

    def test_exact_match_wins_over_suffix(self):
        longer = "csk-x" + KEY_A
        pool = CredentialPool([longer, KEY_A])
        assert pool.find(KEY_A) == KEY_A
