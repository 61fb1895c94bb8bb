import pytest

from hostcompat.core.app import CompatRuntime
from hostcompat.core.config import Settings
from hostcompat.core.errors import ConfigurationError
from hostcompat.core.registry import NamespaceRegistry
from hostcompat.engine.declaration import PlanAction


def _runtime(native=None, **settings):
    return CompatRuntime(
        settings=Settings(**settings),
        registry=NamespaceRegistry(native=native or {}),
    )


def test_take_backfilled_on_old_host():
    runtime = _runtime()
    report = runtime.startup("27.1")

    assert report.action_for("take") is PlanAction.INSTALL_NOW
    assert runtime.registry.exists("take")
    assert runtime.registry.binding("take").alias_of == "compat--take"
    assert runtime.registry.call("take", 2, [1, 2, 3]) == [1, 2]


def test_take_skipped_on_new_host():
    def native_take(n, items):
        return "native"

    runtime = _runtime(native={"take": native_take})
    report = runtime.startup("29.1")

    assert report.action_for("take") is PlanAction.SKIP
    assert runtime.registry.resolve("take") is native_take
    assert not runtime.registry.exists("compat--take")


@pytest.mark.parametrize("host", ["24.4", "27.2", "29.1", "30.0.50"])
def test_plist_get_prefixed_on_every_host(host):
    native = object()
    runtime = _runtime(native={"plist-get": native})
    runtime.startup(host)

    assert runtime.registry.resolve("plist-get") is native
    assert runtime.registry.exists("compat-plist-get")
    assert runtime.call("plist-get", [":a", 1, ":b", 2], ":b") == 2


def test_host_version_from_settings():
    runtime = _runtime(host_version="26.1")
    runtime.startup()
    assert runtime.get_stats()["host_version"] == "26.1"
    assert runtime.registry.exists("string-search")
    assert not runtime.registry.exists("mapcan")


def test_missing_host_version_is_fatal():
    runtime = _runtime()
    with pytest.raises(ConfigurationError):
        runtime.startup()
    assert not runtime.is_running


def test_host_below_floor_is_fatal():
    with pytest.raises(ConfigurationError):
        _runtime().startup("24.3")


def test_malformed_host_version_is_fatal():
    with pytest.raises(ConfigurationError):
        _runtime().startup("emacs-29")


def test_bad_catalog_module_is_fatal():
    with pytest.raises(ConfigurationError):
        _runtime(catalogs=["hostcompat.engine.guards"]).startup("27.1")


def test_deferred_definitions_wait_for_unit():
    runtime = _runtime()
    report = runtime.startup("24.4")

    assert report.action_for("string-pad") is PlanAction.INSTALL_DEFERRED
    assert not runtime.registry.exists("string-pad")

    runtime.notify_loaded("subr-x")

    assert runtime.call("string-pad", "ab", 4, "-", True) == "--ab"
    assert runtime.registry.call("if-let", lambda: 3, lambda v: v * 2) == 6


def test_broken_native_json_is_replaced():
    runtime = _runtime(native={"json-serialize": lambda obj: None})
    report = runtime.startup("28.2")

    assert report.action_for("json-serialize") is PlanAction.INSTALL_GUARDED
    assert runtime.call("json-serialize", {"a": 1}) == '{"a":1}'


def test_working_native_json_is_kept():
    def native(obj):
        return '{"a":1}'

    runtime = _runtime(native={"json-serialize": native})
    runtime.startup("28.2")

    assert runtime.registry.resolve("json-serialize") is native


def test_second_startup_returns_same_report():
    runtime = _runtime()
    report = runtime.startup("27.1")
    assert runtime.startup("27.1") is report
    runtime.shutdown()


def test_watch_imports_installs_and_removes_watcher():
    import sys

    runtime = _runtime(watch_imports=True)
    runtime.startup("27.1")
    assert runtime._watcher in sys.meta_path

    runtime.shutdown()
    assert runtime._watcher is None
    assert not any(type(f).__name__ == "ImportWatcher" for f in sys.meta_path)


def test_stats_aggregate_components():
    runtime = _runtime()
    runtime.startup("25.1")
    stats = runtime.get_stats()

    assert stats["running"] is True
    assert stats["registry"]["compat"] > 0
    assert stats["trigger"]["pending_callbacks"] > 0
    assert stats["engine"]["declarations"] == len(runtime.engine.declarations)


def test_runtimes_sharing_registry_install_once():
    registry = NamespaceRegistry()
    first = CompatRuntime(settings=Settings(), registry=registry)
    first.startup("26.1")
    registry.set_value("read-symbol-shorthands", ["x"])

    second = CompatRuntime(settings=Settings(), registry=registry)
    report = second.startup("26.1")

    assert report.installed == []
    assert registry.value("regexp-unmatchable") == "\\`a\\`"
    assert registry.value("read-symbol-shorthands") == ["x"]
    assert second.call("plist-get", [":a", 1], ":a") == 1
    assert second.call("take", 1, [1, 2]) == [1]


def test_catalog_variables_not_shared_between_runtimes():
    from hostcompat.catalogs import compat_28

    first = _runtime()
    first.startup("27.1")
    first.registry.value("read-symbol-shorthands").append(("s", "subr-x"))

    second = _runtime()
    second.startup("27.1")

    assert second.registry.value("read-symbol-shorthands") == []
    shorthands = [d for d in compat_28.CATALOG if d.original_name == "read-symbol-shorthands"]
    assert shorthands[0].body == []


def test_deferred_entries_reported_separately():
    report = _runtime().startup("24.4")

    assert "string-pad" in report.deferred
    assert "string-pad" not in report.installed
    assert "take" in report.installed
