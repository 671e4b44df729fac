"""Fixtures compartilhadas dos testes."""

from datetime import datetime, timedelta, timezone

import pytest

from envpocket import EntryStore, MemorySecureStore


class FakeClock:
    """Relógio determinístico: avança um segundo a cada leitura."""

    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemorySecureStore()


@pytest.fixture
def entries(store, clock):
    return EntryStore(store, clock=clock)


@pytest.fixture
def clean_env(monkeypatch):
    """Isola os testes das variáveis do envpocket do ambiente real."""
    for name in ("EP_VAULT", "ENVPOCKET_STORE", "ENVPOCKET_PASSPHRASE", "ENVPOCKET_KDF_ITERATIONS"):
        monkeypatch.delenv(name, raising=False)
