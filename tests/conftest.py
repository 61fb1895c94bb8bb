import os

import pytest

from hostcompat.core.config import get_settings
from hostcompat.core.deferred import DeferredTrigger
from hostcompat.core.registry import NamespaceRegistry
from hostcompat.engine.declaration import Declaration, NamingStrategy


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    # Keep a developer's .env or HOSTCOMPAT_* variables out of the tests
    for key in list(os.environ):
        if key.startswith("HOSTCOMPAT_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def registry():
    return NamespaceRegistry()


@pytest.fixture()
def trigger():
    return DeferredTrigger()


def native_take(n, items):
    return items[:n]


def fallback_take(n, items):
    return list(items[:n])


@pytest.fixture()
def take_declaration():
    return Declaration(
        original_name="take",
        body=fallback_take,
        version_introduced="29.1",
        naming_strategy=NamingStrategy.INDIRECT,
        real_name="compat--take",
    )


@pytest.fixture()
def plist_get_declaration():
    return Declaration(
        original_name="plist-get",
        body=lambda plist, prop: None,
        naming_strategy=NamingStrategy.PREFIXED_ONLY,
        real_name="compat-plist-get",
    )
