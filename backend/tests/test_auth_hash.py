from notekeeper.utils.auth_hash import PasswordHasher

hasher = PasswordHasher(rounds=4)


def test_hash_and_verify():
    pw = "correct horse battery staple"
    h = hasher.hash(pw)
    assert isinstance(h, str) and len(h) > 0
    assert hasher.verify(pw, h) is True


def test_wrong_password_fails():
    pw = "s3cret"
    h = hasher.hash(pw)
    assert hasher.verify("wrong", h) is False


def test_hashes_differ_for_same_password():
    pw = "repeatable"
    h1 = hasher.hash(pw)
    h2 = hasher.hash(pw)
    # salted, so two hashes differ
    assert h1 != h2
    assert hasher.verify(pw, h1)
    assert hasher.verify(pw, h2)


def test_malformed_hash_does_not_verify():
    assert hasher.verify("anything", "not-a-hash") is False
    assert hasher.verify(None, "x") is False
