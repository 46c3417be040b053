from __future__ import annotations

import pytest

from affilify.core.config import AffilifyConfig, CryptoConfig
from affilify.core.crypto.facade import CryptoFacade, reset_default_facade
from affilify.core.crypto.payload import Tier
from affilify.core.crypto.providers import ProviderSet, UniversalFallback
from affilify.core.environment import EnvironmentInfo, RuntimeEnvironment

# Cheap KDF parameters; production values are exercised in test_primitives.py
FAST_CRYPTO = CryptoConfig(pbkdf2_iterations=1_000, scrypt_n=2 ** 10)

_RUNTIME_VARS = ("NEXT_RUNTIME", "AFFILIFY_RUNTIME", "NODE_ENV", "AFFILIFY_ENV")


class BrokenProvider:
    """Strong provider whose every primitive fails, as in a crippled runtime."""

    def __init__(self, name: str, tier: Tier) -> None:
        self.name = name
        self.tier = tier
        self.calls = 0

    def _fail(self, *args, **kwargs):
        self.calls += 1
        raise OSError(f"{self.name} primitive unavailable")

    secure_random_bytes = _fail
    digest_sha256 = _fail
    encrypt_aead = _fail
    decrypt_aead = _fail
    native_uuid = _fail


def make_facade(
    runtime: RuntimeEnvironment,
    config: CryptoConfig = FAST_CRYPTO,
    providers: ProviderSet | None = None,
) -> CryptoFacade:
    return CryptoFacade(
        EnvironmentInfo.for_runtime(runtime),
        config=config,
        providers=providers or ProviderSet.from_config(config),
    )


def broken_providers() -> ProviderSet:
    return ProviderSet(
        native=BrokenProvider("native", Tier.NATIVE),
        web=BrokenProvider("web", Tier.WEB),
        fallback=UniversalFallback(),
    )


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch):
    for var in _RUNTIME_VARS:
        monkeypatch.delenv(var, raising=False)
    AffilifyConfig.reset_instance()
    reset_default_facade()
    yield
    AffilifyConfig.reset_instance()
    reset_default_facade()


@pytest.fixture
def node_facade():
    return make_facade(RuntimeEnvironment.NODE)


@pytest.fixture
def browser_facade():
    return make_facade(RuntimeEnvironment.BROWSER)


@pytest.fixture
def edge_facade():
    return make_facade(RuntimeEnvironment.EDGE)


@pytest.fixture(params=list(RuntimeEnvironment), ids=lambda r: r.name.lower())
def any_facade(request):
    return make_facade(request.param)


@pytest.fixture(params=list(RuntimeEnvironment), ids=lambda r: r.name.lower())
def broken_facade(request):
    return make_facade(request.param, providers=broken_providers())


@pytest.fixture
def facade_factory():
    return make_facade


@pytest.fixture
def broken_provider_set():
    return broken_providers()
