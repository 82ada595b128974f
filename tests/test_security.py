from stagelocker.core.security import PasswordCodec


def test_same_password_hashed_twice_differs_but_both_verify(password_codec: PasswordCodec):
    first = password_codec.hash("Abcd123!")
    second = password_codec.hash("Abcd123!")

    assert first != second
    assert password_codec.verify("Abcd123!", first)
    assert password_codec.verify("Abcd123!", second)


def test_different_passwords_do_not_match(password_codec: PasswordCodec):
    hashed = password_codec.hash("Abcd123!")

    assert not password_codec.verify("Abcd123?", hashed)
    assert password_codec.hash("Abcd123!") != password_codec.hash("Wxyz789#")


def test_hash_never_contains_plaintext(password_codec: PasswordCodec):
    hashed = password_codec.hash("Abcd123!")

    assert "Abcd123!" not in hashed
    assert hashed.startswith("$2")


def test_malformed_hash_fails_closed(password_codec: PasswordCodec):
    assert password_codec.verify("Abcd123!", "not-a-bcrypt-hash") is False
    assert password_codec.verify("Abcd123!", "") is False


def test_passwords_longer_than_bcrypt_limit_are_truncated(password_codec: PasswordCodec):
    long_password = "A" * 80
    hashed = password_codec.hash(long_password)

    assert password_codec.verify("A" * 72, hashed)
