from __future__ import annotations

import re

import pytest

from affilify.security.api_keys import (
    fingerprint_api_key,
    generate_api_key,
    generate_api_secret,
    is_api_key,
    mask_api_key,
)


def test_api_key_shape(node_facade):
    key = generate_api_key(node_facade)
    assert re.fullmatch(r"aff_[0-9a-f]{64}", key)
    assert is_api_key(key)


def test_api_key_on_edge_uses_weak_alphabet(edge_facade):
    key = generate_api_key(edge_facade)
    assert re.fullmatch(r"aff_[A-Za-z0-9]{64}", key)
    assert is_api_key(key)


def test_api_keys_are_unique(node_facade):
    assert len({generate_api_key(node_facade) for _ in range(20)}) == 20


def test_api_secret_shape(node_facade):
    assert re.fullmatch(r"[0-9a-f]{128}", generate_api_secret(node_facade))


def test_api_key_uses_default_facade():
    assert generate_api_key().startswith("aff_")


def test_mask_api_key():
    key = "aff_0123456789abcdef"
    assert mask_api_key(key) == "aff_01234567..."
    assert mask_api_key("short") == "short..."


@pytest.mark.parametrize("value", ["", "aff_", "key_abc", "aff_abc-def", None, 123])
def test_is_api_key_rejects(value):
    assert not is_api_key(value)


@pytest.mark.anyio
async def test_fingerprint_matches_sha256(node_facade):
    key = generate_api_key(node_facade)
    assert await fingerprint_api_key(key, node_facade) == await node_facade.sha256_hash(key)


@pytest.mark.anyio
async def test_fingerprint_rejects_non_keys(node_facade):
    with pytest.raises(ValueError):
        await fingerprint_api_key("not-a-key", node_facade)
