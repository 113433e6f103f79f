"""
streamchat - Pytest Configuration

Configures:
- Stub-backed routers and apps for unit tests
- Scripted byte sources for reader tests
"""

import asyncio
import logging
from typing import List, Optional, Sequence

import pytest
from fastapi.testclient import TestClient

from streamchat.adapters import StubAdapter
from streamchat.adapters.base import AdapterConfig
from streamchat.auth.credentials import CredentialStore
from streamchat.core.config import Settings
from streamchat.core.models import Provider
from streamchat.observability.metrics import MetricsCollector
from streamchat.routing.router import ModelRouter
from streamchat.server import create_app


# ============================================================
# Stub Routers
# ============================================================

class StubFactory:
    """
    Adapter factory handing out StubAdapters and remembering them.

    Usage:
        factory = StubFactory(fragments=["a", "b"], fail_after=1)
        router = ModelRouter(credentials, adapter_factory=factory)
    """

    def __init__(
        self,
        fragments: Sequence[str] = ("<think>", "stub reasoning", "</think>", "stub:", " deterministic stream"),
        fail_after: Optional[int] = None,
        error: Optional[Exception] = None,
    ):
        self.fragments = fragments
        self.fail_after = fail_after
        self.error = error
        self.adapters: List[StubAdapter] = []
        self.configs: List[AdapterConfig] = []

    def __call__(self, provider: Provider, config: AdapterConfig) -> StubAdapter:
        adapter = StubAdapter(
            config,
            fragments=self.fragments,
            fail_after=self.fail_after,
            error=self.error,
            provider=Provider(provider),
        )
        self.adapters.append(adapter)
        self.configs.append(config)
        return adapter


def make_router(
    factory: Optional[StubFactory] = None,
    keys: Optional[dict] = None,
    **kwargs,
) -> ModelRouter:
    if keys is None:
        keys = {provider: f"test-{provider.value}-key" for provider in Provider}
    return ModelRouter(
        CredentialStore(keys),
        adapter_factory=factory or StubFactory(),
        metrics=kwargs.pop("metrics", MetricsCollector()),
        system_prompt=kwargs.pop("system_prompt", "You are a test assistant."),
        **kwargs,
    )


@pytest.fixture
def stub_factory():
    return StubFactory()


@pytest.fixture
def router(stub_factory):
    return make_router(stub_factory)


@pytest.fixture
def settings():
    return Settings(log_json=False, system_prompt="You are a test assistant.")


@pytest.fixture
def app(settings, router):
    return create_app(settings=settings, router=router)


@pytest.fixture
def client(app):
    return TestClient(app)


# ============================================================
# Byte Sources (for reader tests)
# ============================================================

class ByteSource:
    """
    Async byte iterator that records whether it was released.

    Args:
        chunks: Byte chunks returned in order
        hang: Block forever once the chunks run out
        error: Raised once the chunks run out
    """

    def __init__(self, chunks: Sequence[bytes], hang: bool = False, error: Optional[Exception] = None):
        self.chunks = list(chunks)
        self.hang = hang
        self.error = error
        self.reads = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        if self.chunks:
            self.reads += 1
            return self.chunks.pop(0)
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()
        raise StopAsyncIteration

    async def aclose(self):
        self.closed = True


@pytest.fixture
def byte_source():
    return ByteSource


# ============================================================
# Logging Configuration
# ============================================================

@pytest.fixture(autouse=True)
def configure_test_logging():
    """Configure logging for tests."""
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    yield
