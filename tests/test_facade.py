from __future__ import annotations

import base64
import json
import logging
import random
import re

import pytest

from affilify.core.config import CryptoConfig
from affilify.core.crypto import facade as facade_module
from affilify.core.crypto.payload import xor_encrypt
from affilify.core.crypto.providers import ProviderSet, UniversalFallback, WebCryptoProvider
from affilify.core.crypto.result import CryptoError, DecryptionError, PrimitiveUnavailableError
from affilify.core.environment import RuntimeEnvironment
from affilify.security.constants import FALLBACK_ALPHABET

HEX_32 = re.compile(r"^[0-9a-f]{32}$")
ALNUM_32 = re.compile(r"^[A-Za-z0-9]{32}$")
UUID_V4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")

AFFILIFY_SHA256 = "77fd9d2c7c04c9c4c0be2c9cf7d98c423a972c8d011232c9512f062276ed0036"
ABC_SHA256 = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

SECRET = "affilify-secret"
TAGGED = CryptoConfig(pbkdf2_iterations=1_000, scrypt_n=2 ** 10, tag_ciphertext=True)


# generate_random_string

def test_random_string_node_is_hex(node_facade):
    assert HEX_32.match(node_facade.generate_random_string(16))


def test_random_string_browser_is_hex(browser_facade):
    assert HEX_32.match(browser_facade.generate_random_string(16))


def test_random_string_edge_uses_weak_alphabet(edge_facade):
    samples = [edge_facade.generate_random_string(16) for _ in range(5)]
    assert all(ALNUM_32.match(s) for s in samples)
    # Uppercase / g-z characters never occur in hex output
    assert set("".join(samples)) - set("0123456789abcdef")


def test_random_string_forced_fallback(broken_facade):
    value = broken_facade.generate_random_string(16)
    assert len(value) == 32
    assert set(value) <= set(FALLBACK_ALPHABET)


def test_random_string_default_length(node_facade):
    assert len(node_facade.generate_random_string()) == 64


@pytest.mark.parametrize("length", [1, 7, 64])
def test_random_string_length_is_doubled(any_facade, length):
    assert len(any_facade.generate_random_string(length)) == 2 * length


def test_random_strings_differ(any_facade):
    assert any_facade.generate_random_string(16) != any_facade.generate_random_string(16)


@pytest.mark.parametrize("length, error", [
    (0, ValueError),
    (-4, ValueError),
    (2.5, TypeError),
    ("16", TypeError),
    (True, TypeError),
])
def test_random_string_rejects_bad_length(node_facade, length, error):
    with pytest.raises(error):
        node_facade.generate_random_string(length)


# sha256_hash

@pytest.mark.anyio
async def test_sha256_pinned_digest(any_facade):
    assert await any_facade.sha256_hash("affilify") == AFFILIFY_SHA256


@pytest.mark.anyio
async def test_sha256_known_vectors(any_facade):
    assert await any_facade.sha256_hash("abc") == ABC_SHA256
    assert await any_facade.sha256_hash("") == EMPTY_SHA256
    assert await any_facade.sha256_hash("abd") != ABC_SHA256


@pytest.mark.anyio
async def test_sha256_hashes_utf8(any_facade):
    digest = await any_facade.sha256_hash("héllo ✓")
    assert re.fullmatch(r"[0-9a-f]{64}", digest)
    assert digest == await any_facade.sha256_hash("héllo ✓")


@pytest.mark.anyio
async def test_sha256_node_falls_back_to_web_path(facade_factory, broken_provider_set):
    providers = ProviderSet(
        native=broken_provider_set.native,
        web=WebCryptoProvider(),
        fallback=UniversalFallback(),
    )
    facade = facade_factory(RuntimeEnvironment.NODE, providers=providers)
    assert await facade.sha256_hash("affilify") == AFFILIFY_SHA256
    assert providers.native.calls == 1


@pytest.mark.anyio
async def test_sha256_without_any_digest_api(facade_factory, broken_provider_set):
    facade = facade_factory(RuntimeEnvironment.BROWSER, providers=broken_provider_set)
    with pytest.raises(CryptoError):
        await facade.sha256_hash("affilify")


@pytest.mark.anyio
async def test_sha256_rejects_non_string(node_facade):
    with pytest.raises(TypeError):
        await node_facade.sha256_hash(b"bytes")


# generate_uuid

def test_uuid_is_v4(any_facade):
    for _ in range(20):
        assert UUID_V4.match(any_facade.generate_uuid())


def test_uuid_forced_fallback(broken_facade):
    values = {broken_facade.generate_uuid() for _ in range(50)}
    assert len(values) == 50
    assert all(UUID_V4.match(v) for v in values)


def test_uuid_without_random_uuid(facade_factory):
    providers = ProviderSet(web=WebCryptoProvider(has_random_uuid=False))
    facade = facade_factory(RuntimeEnvironment.EDGE, providers=providers)
    assert UUID_V4.match(facade.generate_uuid())


def test_missing_random_uuid_is_reported_as_unavailable():
    with pytest.raises(PrimitiveUnavailableError):
        WebCryptoProvider(has_random_uuid=False).native_uuid()


def test_synthesized_uuid_layout():
    fallback = UniversalFallback()
    for _ in range(200):
        value = fallback.synthesize_uuid()
        assert len(value) == 36
        assert [i for i, c in enumerate(value) if c == "-"] == [8, 13, 18, 23]
        assert value[14] == "4"
        assert value[19] in "89ab"


# encrypt_text / decrypt_text

@pytest.mark.anyio
@pytest.mark.parametrize("text", ["hello", "", "héllo wörld ✓ \U0001F680", "x" * 5000])
async def test_round_trip_same_tier(any_facade, text):
    encrypted = await any_facade.encrypt_text(text, SECRET)
    assert encrypted != text or text == ""
    assert await any_facade.decrypt_text(encrypted, SECRET) == text


@pytest.mark.anyio
async def test_node_payload_is_json_envelope(node_facade):
    encrypted = await node_facade.encrypt_text("hello", SECRET)
    envelope = json.loads(base64.b64decode(encrypted))
    assert len(bytes.fromhex(envelope["iv"])) == 16
    assert len(bytes.fromhex(envelope["authTag"])) == 16
    assert len(bytes.fromhex(envelope["encryptedData"])) == len("hello")


@pytest.mark.anyio
@pytest.mark.parametrize("runtime", [RuntimeEnvironment.BROWSER, RuntimeEnvironment.EDGE])
async def test_web_payload_is_iv_plus_ciphertext(facade_factory, runtime):
    facade = facade_factory(runtime)
    encrypted = await facade.encrypt_text("hello", SECRET)
    assert len(base64.b64decode(encrypted)) == 12 + len("hello") + 16


@pytest.mark.anyio
async def test_encryption_uses_fresh_iv(any_facade):
    first = await any_facade.encrypt_text("same", SECRET)
    second = await any_facade.encrypt_text("same", SECRET)
    assert first != second


@pytest.mark.anyio
async def test_edge_and_browser_share_the_web_tier(browser_facade, edge_facade):
    encrypted = await edge_facade.encrypt_text("shared", SECRET)
    assert await browser_facade.decrypt_text(encrypted, SECRET) == "shared"


@pytest.mark.anyio
async def test_forced_fallback_encrypts_with_xor(broken_facade):
    encrypted = await broken_facade.encrypt_text("hello", SECRET)
    assert encrypted == xor_encrypt("hello", SECRET)
    assert await broken_facade.decrypt_text(encrypted, SECRET) == "hello"


@pytest.mark.anyio
@pytest.mark.parametrize("text, key", [
    ("üü", "8z"),
    ("\x85\xd9\xe1", "a"),
    ("Ärger über Öl", "key"),
])
async def test_forced_fallback_round_trips_latin1_text(broken_facade, text, key):
    encrypted = await broken_facade.encrypt_text(text, key)
    assert await broken_facade.decrypt_text(encrypted, key) == text


@pytest.mark.anyio
async def test_forced_fallback_round_trips_random_latin1_text(broken_facade):
    rng = random.Random(1234)
    for _ in range(100):
        text = "".join(chr(rng.randrange(256)) for _ in range(rng.randrange(1, 24)))
        key = "".join(chr(rng.randrange(32, 127)) for _ in range(rng.randrange(1, 9)))
        encrypted = await broken_facade.encrypt_text(text, key)
        assert await broken_facade.decrypt_text(encrypted, key) == text



@pytest.mark.anyio
async def test_cross_tier_round_trip_is_not_guaranteed(node_facade, browser_facade):
    encrypted = await node_facade.encrypt_text("cross tier", SECRET)
    # Garbage from the XOR fallback, never an exception
    assert await browser_facade.decrypt_text(encrypted, SECRET) != "cross tier"


@pytest.mark.anyio
async def test_wrong_key_returns_garbage_silently(any_facade):
    encrypted = await any_facade.encrypt_text("secret text", SECRET)
    assert await any_facade.decrypt_text(encrypted, "other-secret") != "secret text"


@pytest.mark.anyio
async def test_tampered_ciphertext_returns_garbage_silently(browser_facade):
    encrypted = await browser_facade.encrypt_text("secret text", SECRET)
    raw = bytearray(base64.b64decode(encrypted))
    raw[-1] ^= 0x01
    tampered = base64.b64encode(bytes(raw)).decode()
    assert await browser_facade.decrypt_text(tampered, SECRET) != "secret text"


@pytest.mark.anyio
async def test_decrypt_of_junk_never_raises(any_facade):
    assert isinstance(await any_facade.decrypt_text("%%% not a payload", SECRET), str)


@pytest.mark.anyio
async def test_encrypt_rejects_non_string(node_facade):
    with pytest.raises(TypeError):
        await node_facade.encrypt_text(None, SECRET)
    with pytest.raises(TypeError):
        await node_facade.decrypt_text("abc", 42)


# tagged ciphertexts

@pytest.mark.anyio
@pytest.mark.parametrize("runtime, prefix", [
    (RuntimeEnvironment.NODE, "n1$"),
    (RuntimeEnvironment.BROWSER, "w1$"),
    (RuntimeEnvironment.EDGE, "w1$"),
])
async def test_tagged_round_trip(facade_factory, runtime, prefix):
    facade = facade_factory(runtime, config=TAGGED)
    encrypted = await facade.encrypt_text("tagged", SECRET)
    assert encrypted.startswith(prefix)
    assert await facade.decrypt_text(encrypted, SECRET) == "tagged"


@pytest.mark.anyio
async def test_tagged_wrong_key_fails_loudly(facade_factory):
    facade = facade_factory(RuntimeEnvironment.NODE, config=TAGGED)
    encrypted = await facade.encrypt_text("tagged", SECRET)
    with pytest.raises(DecryptionError):
        await facade.decrypt_text(encrypted, "other-secret")


@pytest.mark.anyio
async def test_tagged_tier_mismatch_fails_loudly(facade_factory):
    node = facade_factory(RuntimeEnvironment.NODE, config=TAGGED)
    browser = facade_factory(RuntimeEnvironment.BROWSER, config=TAGGED)
    encrypted = await node.encrypt_text("tagged", SECRET)
    with pytest.raises(DecryptionError):
        await browser.decrypt_text(encrypted, SECRET)


@pytest.mark.anyio
async def test_tagged_fallback_tier(facade_factory, broken_provider_set):
    broken = facade_factory(RuntimeEnvironment.NODE, config=TAGGED, providers=broken_provider_set)
    encrypted = await broken.encrypt_text("weak", SECRET)
    assert encrypted.startswith("x1$")

    healthy = facade_factory(RuntimeEnvironment.BROWSER, config=TAGGED)
    assert await healthy.decrypt_text(encrypted, SECRET) == "weak"


@pytest.mark.anyio
async def test_tagged_mode_reads_legacy_payloads(facade_factory):
    legacy = facade_factory(RuntimeEnvironment.NODE)
    tagged = facade_factory(RuntimeEnvironment.NODE, config=TAGGED)
    encrypted = await legacy.encrypt_text("legacy", SECRET)
    assert await tagged.decrypt_text(encrypted, SECRET) == "legacy"


@pytest.mark.anyio
async def test_tagged_unknown_tier(facade_factory):
    facade = facade_factory(RuntimeEnvironment.NODE, config=TAGGED)
    with pytest.raises(DecryptionError):
        await facade.decrypt_text("q1$Zm9v", SECRET)


# logging

@pytest.mark.anyio
async def test_fallback_is_logged_without_secrets(facade_factory, broken_provider_set, caplog):
    facade = facade_factory(RuntimeEnvironment.NODE, providers=broken_provider_set)
    with caplog.at_level(logging.WARNING, logger="affilify.core.crypto.facade"):
        await facade.encrypt_text("plaintext-value", SECRET)

    messages = [r.getMessage() for r in caplog.records]
    assert any("encrypt_text: provider native failed (OSError), falling back" in m for m in messages)
    assert not any(SECRET in m or "plaintext-value" in m for m in messages)


# module-level functions

@pytest.mark.anyio
async def test_module_functions_use_default_facade():
    facade = facade_module.get_default_facade()
    assert facade_module.get_default_facade() is facade

    assert len(facade_module.generate_random_string(8)) == 16
    assert UUID_V4.match(facade_module.generate_uuid())
    assert await facade_module.sha256_hash("affilify") == AFFILIFY_SHA256

    encrypted = await facade_module.encrypt_text("module level", SECRET)
    assert await facade_module.decrypt_text(encrypted, SECRET) == "module level"


def test_reset_default_facade():
    first = facade_module.get_default_facade()
    facade_module.reset_default_facade()
    assert facade_module.get_default_facade() is not first
