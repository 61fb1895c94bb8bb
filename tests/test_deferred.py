import sys
import threading

import pytest

from hostcompat.core.deferred import DeferredTrigger, ImportWatcher
from hostcompat.core.errors import CallbackError


def test_register_on_loaded_unit_runs_synchronously(trigger):
    calls = []
    trigger.notify_loaded("subr-x")

    trigger.register("subr-x", lambda: calls.append("cb"))

    assert calls == ["cb"]
    assert trigger.pending_count() == 0


def test_register_waits_for_first_notification_only(trigger):
    calls = []
    trigger.register("subr-x", lambda: calls.append("cb"))
    assert calls == []

    assert trigger.notify_loaded("subr-x") == 1
    assert calls == ["cb"]

    assert trigger.notify_loaded("subr-x") == 0
    assert calls == ["cb"]


def test_callbacks_fire_in_registration_order(trigger):
    calls = []
    for i in range(4):
        trigger.register("seq", lambda i=i: calls.append(i))

    trigger.notify_loaded("seq")

    assert calls == [0, 1, 2, 3]


def test_units_are_independent(trigger):
    calls = []
    trigger.register("a", lambda: calls.append("a"))
    trigger.register("b", lambda: calls.append("b"))

    trigger.notify_loaded("b")

    assert calls == ["b"]
    assert trigger.pending_units() == ["a"]
    assert not trigger.is_loaded("a")


def test_failing_callback_does_not_stop_siblings(trigger):
    calls = []

    def boom():
        raise RuntimeError("payload bug")

    trigger.register("unit", boom)
    trigger.register("unit", lambda: calls.append("after"))

    trigger.notify_loaded("unit")

    assert calls == ["after"]
    failures = trigger.failures
    assert len(failures) == 1
    assert isinstance(failures[0], CallbackError)
    assert failures[0].unit == "unit"
    assert isinstance(failures[0].cause, RuntimeError)
    assert trigger.get_stats()["failures"] == 1


def test_failing_synchronous_callback_is_isolated(trigger):
    trigger.notify_loaded("unit")

    trigger.register("unit", lambda: 1 / 0)

    assert len(trigger.failures) == 1


@pytest.fixture()
def module_dir(tmp_path, monkeypatch):
    monkeypatch.syspath_prepend(str(tmp_path))
    yield tmp_path
    for name in ("hostcompat_sample_unit", "hostcompat_sample_early", "hostcompat_sample_late", "hostcompat_sample_thread"):
        sys.modules.pop(name, None)


def test_import_watcher_notifies_on_import(trigger, module_dir):
    (module_dir / "hostcompat_sample_unit.py").write_text("VALUE = 42\n", encoding="utf-8")
    calls = []
    trigger.register("hostcompat_sample_unit", lambda: calls.append("loaded"))

    watcher = ImportWatcher(trigger)
    watcher.install()
    try:
        import hostcompat_sample_unit
    finally:
        watcher.uninstall()

    assert hostcompat_sample_unit.VALUE == 42
    assert calls == ["loaded"]
    assert trigger.is_loaded("hostcompat_sample_unit")
    assert watcher not in sys.meta_path


def test_import_watcher_notifies_units_already_imported(module_dir):
    (module_dir / "hostcompat_sample_early.py").write_text("", encoding="utf-8")
    import hostcompat_sample_early  # noqa: F401

    trigger = DeferredTrigger()
    calls = []
    trigger.register("hostcompat_sample_early", lambda: calls.append("loaded"))

    watcher = ImportWatcher(trigger)
    watcher.install()
    watcher.uninstall()

    assert calls == ["loaded"]


def test_register_after_watcher_install_sees_imported_unit(trigger, module_dir):
    (module_dir / "hostcompat_sample_late.py").write_text("", encoding="utf-8")
    watcher = ImportWatcher(trigger)
    watcher.install()
    try:
        import hostcompat_sample_late  # noqa: F401

        calls = []
        trigger.register("hostcompat_sample_late", lambda: calls.append("loaded"))
    finally:
        watcher.uninstall()

    assert calls == ["loaded"]
    assert trigger.pending_count() == 0
    assert trigger.watcher is None


def test_register_without_watcher_ignores_imported_modules(trigger):
    import json  # noqa: F401

    calls = []
    trigger.register("json", lambda: calls.append("loaded"))

    assert "json" in sys.modules
    assert calls == []
    assert trigger.pending_count("json") == 1


def test_imports_on_other_threads_wait_for_poll(trigger, module_dir):
    (module_dir / "hostcompat_sample_thread.py").write_text("", encoding="utf-8")
    calls = []
    trigger.register("hostcompat_sample_thread", lambda: calls.append(threading.get_ident()))

    watcher = ImportWatcher(trigger)
    watcher.install()
    try:
        worker = threading.Thread(target=__import__, args=("hostcompat_sample_thread",))
        worker.start()
        worker.join()

        assert "hostcompat_sample_thread" in sys.modules
        assert calls == []
        assert watcher.poll() == 1
    finally:
        watcher.uninstall()

    assert calls == [threading.get_ident()]
