from __future__ import annotations

import pytest
from cryptography.exceptions import InvalidTag

from affilify.core.crypto.aes_gcm import AesGcmCipher
from affilify.core.crypto.kdf import derive_key_pbkdf2, derive_key_scrypt


# key derivation

def test_scrypt_rfc7914_vector():
    key = derive_key_scrypt("password", salt=b"NaCl", length=64, n=1024, r=8, p=16)
    assert key.hex() == (
        "fdbabe1c9d3472007856e7190d01e9fe7c6ad7cbc8237830e77376634b373162"
        "2eaf30d92e22a3886ff109279d9830dac727afb94a83ee6d8360cbdfa2cc0640"
    )


def test_pbkdf2_sha256_vector():
    key = derive_key_pbkdf2("password", salt=b"salt", iterations=1)
    assert key.hex() == "120fb6cffcf8b32c43e7225256c4f837a86548c92ccc35480805987cb70be17b"


def test_native_key_with_default_parameters():
    # Same key as scryptSync(secret, "salt", 32) on the server
    assert derive_key_scrypt("affilify-secret").hex() == (
        "67035633968181cddc69501324e195a3ce10dcdfca445d9c218cc69712e05e67"
    )


def test_web_key_with_default_parameters():
    # Same key as PBKDF2 / SHA-256 / 100,000 iterations / salt "salt" in Web Crypto
    assert derive_key_pbkdf2("affilify-secret").hex() == (
        "ae6f27dcc7b7ece31f5a316b6706fa4c713144ecb8dd6bca37ef55c408ad0085"
    )


def test_different_secrets_differ():
    assert derive_key_pbkdf2("a", iterations=10) != derive_key_pbkdf2("b", iterations=10)
    assert len(derive_key_scrypt("a", n=2 ** 10)) == 32


# AES-GCM

KEY = bytes(range(32))


@pytest.mark.parametrize("nonce_size", [12, 16])
def test_aes_gcm_round_trip(nonce_size):
    cipher = AesGcmCipher(nonce_size=nonce_size)
    result = cipher.encrypt(b"landing page copy", KEY)

    assert len(result.nonce) == nonce_size
    assert len(result.tag) == 16
    assert result.body + result.tag == result.ciphertext
    assert cipher.decrypt(result.ciphertext, result.nonce, KEY) == b"landing page copy"


def test_aes_gcm_detached_tag():
    cipher = AesGcmCipher(nonce_size=16)
    result = cipher.encrypt(b"", KEY)
    joined = AesGcmCipher.join_tag(result.body, result.tag)
    assert cipher.decrypt(joined, result.nonce, KEY) == b""


def test_aes_gcm_fresh_nonce_per_call():
    cipher = AesGcmCipher()
    assert cipher.encrypt(b"x", KEY).nonce != cipher.encrypt(b"x", KEY).nonce


def test_aes_gcm_rejects_tampering():
    cipher = AesGcmCipher()
    result = cipher.encrypt(b"payload", KEY)
    tampered = bytes([result.ciphertext[0] ^ 1]) + result.ciphertext[1:]
    with pytest.raises(InvalidTag):
        cipher.decrypt(tampered, result.nonce, KEY)


def test_aes_gcm_rejects_wrong_key():
    cipher = AesGcmCipher()
    result = cipher.encrypt(b"payload", KEY)
    with pytest.raises(InvalidTag):
        cipher.decrypt(result.ciphertext, result.nonce, bytes(32))


def test_aes_gcm_parameter_validation():
    cipher = AesGcmCipher()
    with pytest.raises(ValueError):
        cipher.encrypt(b"x", b"short")
    with pytest.raises(ValueError):
        cipher.encrypt(b"x", KEY, nonce=b"\x00" * 16)
    with pytest.raises(ValueError):
        cipher.decrypt(b"\x00" * 8, b"\x00" * 12, KEY)
    with pytest.raises(ValueError):
        AesGcmCipher.join_tag(b"body", b"tag")
    with pytest.raises(ValueError):
        AesGcmCipher(nonce_size=8)
