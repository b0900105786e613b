import pytest

from agent_vault import cipher, config
from agent_vault.errors import DecryptionFailed

AD = "mint:TestMint"


@pytest.fixture
def key():
    return cipher.generate_content_key()


def test_encrypt_decrypt(key):
    nonce, ciphertext = cipher.encrypt(b'{"name":"Bot"}', key, AD)
    assert len(nonce) == cipher.NONCE_SIZE == 24
    assert len(ciphertext) == len(b'{"name":"Bot"}') + cipher.TAG_SIZE
    assert cipher.decrypt(ciphertext, key, nonce, AD) == b'{"name":"Bot"}'


def test_empty_plaintext(key):
    nonce, ciphertext = cipher.encrypt(b"", key, AD)
    assert cipher.decrypt(ciphertext, key, nonce, AD) == b""


def test_nonces_are_fresh(key):
    first, _ = cipher.encrypt(b"same", key, AD)
    second, _ = cipher.encrypt(b"same", key, AD)
    assert first != second


def test_content_keys_are_fresh():
    assert cipher.generate_content_key() != cipher.generate_content_key()
    assert len(cipher.generate_content_key()) == cipher.KEY_SIZE


def test_associated_data_mismatch_fails(key):
    nonce, ciphertext = cipher.encrypt(b"secret", key, AD)
    with pytest.raises(DecryptionFailed):
        cipher.decrypt(ciphertext, key, nonce, "mint:OtherMint")


def test_wrong_key_fails(key):
    nonce, ciphertext = cipher.encrypt(b"secret", key, AD)
    with pytest.raises(DecryptionFailed):
        cipher.decrypt(ciphertext, cipher.generate_content_key(), nonce, AD)


@pytest.mark.parametrize("index", [0, 3, -1])
def test_flipped_ciphertext_byte_fails(key, index):
    nonce, ciphertext = cipher.encrypt(b"secret config", key, AD)
    tampered = bytearray(ciphertext)
    tampered[index] ^= 0x01
    with pytest.raises(DecryptionFailed):
        cipher.decrypt(bytes(tampered), key, nonce, AD)


def test_truncated_ciphertext_fails(key):
    nonce, ciphertext = cipher.encrypt(b"secret config", key, AD)
    with pytest.raises(DecryptionFailed):
        cipher.decrypt(ciphertext[:-1], key, nonce, AD)
    with pytest.raises(DecryptionFailed):
        cipher.decrypt(ciphertext[:cipher.TAG_SIZE - 1], key, nonce, AD)


def test_bad_key_length_is_rejected():
    with pytest.raises(ValueError):
        cipher.encrypt(b"x", b"\x00" * 16, AD)


def test_bad_nonce_length_is_rejected(key):
    _, ciphertext = cipher.encrypt(b"x", key, AD)
    with pytest.raises(ValueError):
        cipher.decrypt(ciphertext, key, b"\x00" * 12, AD)


def test_oversized_plaintext_is_rejected(key, monkeypatch):
    monkeypatch.setattr(config, "MAX_PLAINTEXT_SIZE", 4)
    with pytest.raises(ValueError):
        cipher.encrypt(b"12345", key, AD)


def test_wipe(key):
    cipher.wipe(key)
    assert key == bytearray(cipher.KEY_SIZE)
