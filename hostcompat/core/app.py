"""Runtime bootstrap: settings, logging, catalogs and the install pass."""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .config import Settings, get_settings
from .deferred import DeferredTrigger, ImportWatcher
from .errors import CompatError, ConfigurationError, FormatError
from .logger import get_logger, setup_logger
from .registry import NamespaceRegistry
from .version import parse_version, version_lt

logger = get_logger(__name__)


class CompatRuntime:
    """
    Owns the process-wide namespace and runs the one-shot install pass.

    The registry has a single writer: the thread calling startup(). Load
    notifications, and with them deferred installations, must be delivered
    on that thread too. The import watcher only reports imports made there;
    units imported by other threads are picked up by poll_imports().
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[NamespaceRegistry] = None,
        trigger: Optional[DeferredTrigger] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry if registry is not None else NamespaceRegistry()
        self.trigger = trigger if trigger is not None else DeferredTrigger()
        self.engine = None
        self.report = None
        self._watcher: Optional[ImportWatcher] = None
        self._start_time: Optional[datetime] = None

    @property
    def is_running(self) -> bool:
        return self.engine is not None

    def startup(self, host_version: Optional[str] = None):
        """
        Load the configured catalogs and install what this host lacks.

        Args:
            host_version: Overrides the configured host version

        Returns:
            The InstallReport of the pass

        Raises:
            ConfigurationError: On any packaging defect.
            CompatError: On any other failure of the install pass. Either way
                the runtime is left unstarted and the error is logged at
                critical level.
        """
        from ..engine.catalog import CompatEngine, load_catalog

        if self.is_running:
            logger.warning("Runtime already started")
            return self.report

        setup_logger(
            name="hostcompat",
            level=self.settings.log_level,
            log_file=self.settings.log_file,
            rich_console=self.settings.rich_console,
        )

        try:
            version = host_version or self.settings.host_version
            if not version:
                raise ConfigurationError("No host version given")
            try:
                parse_version(version)
            except FormatError as e:
                raise ConfigurationError(
                    f"Malformed host version: {version!r}",
                    details={"host_version": version},
                ) from e
            if version_lt(version, self.settings.minimum_host_version):
                raise ConfigurationError(
                    f"Host {version} is older than the oldest supported release "
                    f"{self.settings.minimum_host_version}",
                    details={
                        "host_version": version,
                        "minimum": self.settings.minimum_host_version,
                    },
                )

            engine = CompatEngine(self.registry, self.trigger, version)
            for module_name in self.settings.catalogs:
                catalog = load_catalog(module_name)
                count = engine.declare_all(catalog)
                logger.debug("Catalog loaded", module=module_name, release=catalog.release, declarations=count)

            report = engine.install_all()
        except CompatError as e:
            logger.critical("Refusing to start", error=str(e), **e.details)
            raise

        self.engine = engine
        self.report = report
        self._start_time = datetime.now()

        if self.settings.watch_imports:
            self._watcher = ImportWatcher(self.trigger)
            self._watcher.install()

        logger.info(
            "Compatibility runtime started",
            host_version=version,
            installed=len(report.installed),
            deferred=len(report.deferred),
            pending=self.trigger.pending_count(),
        )
        return report

    def shutdown(self) -> None:
        """Stop watching imports. Installed bindings stay in place."""
        if self._watcher is not None:
            self._watcher.uninstall()
            self._watcher = None
        logger.info("Compatibility runtime stopped")

    def notify_loaded(self, unit_name: str) -> int:
        """Forward a unit-load notification from the host's loader."""
        return self.trigger.notify_loaded(unit_name)

    def poll_imports(self) -> int:
        """Notify pending units that are already imported. Returns the callbacks fired."""
        if self._watcher is None:
            return 0
        return self._watcher.poll()

    def function(self, name: str) -> Callable:
        """
        The implementation to use for ``name``.

        Prefers a fallback installed under a real or prefixed name, which is
        the only way to reach prefixed-only definitions by their plain name.
        """
        target = name
        if self.engine is not None:
            target = self.engine.installer.fallback_for(name) or name
        return self.registry.resolve(target)

    def call(self, name: str, *args: Any, **kwargs: Any) -> Any:
        return self.function(name)(*args, **kwargs)

    def get_stats(self) -> Dict[str, Any]:
        """Get runtime statistics."""
        return {
            "running": self.is_running,
            "host_version": self.engine.host_version if self.engine else None,
            "uptime_seconds": (
                (datetime.now() - self._start_time).total_seconds()
                if self._start_time else 0
            ),
            "registry": self.registry.get_stats(),
            "trigger": self.trigger.get_stats(),
            "engine": self.engine.get_stats() if self.engine else None,
        }


# Global runtime instance
_runtime: Optional[CompatRuntime] = None


def get_runtime() -> CompatRuntime:
    """Get the global runtime instance."""
    global _runtime
    if _runtime is None:
        _runtime = CompatRuntime()
    return _runtime


def compat_function(name: str) -> Callable:
    return get_runtime().function(name)


def compat_call(name: str, *args: Any, **kwargs: Any) -> Any:
    """Call ``name`` through the global runtime, preferring its fallback."""
    return get_runtime().call(name, *args, **kwargs)
