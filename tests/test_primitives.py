import pytest

from encryptdir import primitives
from encryptdir.primitives import SigningIdentity, generate_key


def test_aes_round_trip():
    key = generate_key()
    blob = primitives.encrypt(key, b"hello")
    assert blob != b"hello"
    assert primitives.decrypt(key, blob) == b"hello"


def test_aes_nonce_is_fresh():
    key = generate_key()
    assert primitives.encrypt(key, b"same") != primitives.encrypt(key, b"same")


def test_aes_rejects_tampering():
    key = generate_key()
    blob = bytearray(primitives.encrypt(key, b"hello world"))
    blob[-1] ^= 0x01
    with pytest.raises(ValueError):
        primitives.decrypt(key, bytes(blob))


def test_aes_rejects_wrong_key():
    blob = primitives.encrypt(generate_key(), b"hello")
    with pytest.raises(ValueError):
        primitives.decrypt(generate_key(), blob)


def test_aes_rejects_short_input():
    with pytest.raises(ValueError):
        primitives.decrypt(generate_key(), b"short")


def test_marker_size_matches_signature(identity):
    marker = identity.sign(b"key material")
    assert len(marker) == identity.marker_size == 128


def test_signatures_are_deterministic(identity):
    assert identity.sign(b"k") == identity.sign(b"k")


def test_verify(identity, other_identity):
    marker = identity.sign(b"key one")
    assert identity.verify(marker, b"key one")
    assert not identity.verify(marker, b"key two")
    assert not other_identity.verify(marker, b"key one")


def test_verify_rejects_wrong_length(identity):
    assert not identity.verify(b"", b"k")
    assert not identity.verify(identity.sign(b"k")[:-1], b"k")


def test_public_identity_verifies_but_cannot_sign(identity):
    public = identity.public()
    assert not public.can_sign
    assert public.verify(identity.sign(b"k"), b"k")
    with pytest.raises(TypeError):
        public.sign(b"k")


def test_pem_round_trip(identity, tmp_path):
    path = tmp_path / "id.pem"
    path.write_bytes(identity.to_pem())
    loaded = SigningIdentity.load(path)
    assert loaded.verify(identity.sign(b"k"), b"k")
    assert loaded.sign(b"k") == identity.sign(b"k")


def test_pem_with_passphrase(identity):
    pem = identity.to_pem("secret")
    loaded = SigningIdentity.from_pem(pem, passphrase="secret")
    assert loaded.sign(b"k") == identity.sign(b"k")
    with pytest.raises((ValueError, IndexError, TypeError)):
        SigningIdentity.from_pem(pem, passphrase="wrong")
