"""
Profile registry - Owns the active profile table and swaps it on reload.

States:
- Uninitialized: no table yet, queries raise RegistryNotReadyError
- Ready: exactly one current ProfileTable

Readers take no lock: get_current_table() returns whatever table is current
and the caller keeps using it even if a reload happens meanwhile. Reloads
compile a brand-new table outside the lock and only hold the lock for the
reference swap and listener notification, so the last reload to finish wins.
"""

import logging
import threading
from collections.abc import Callable

from .compiler import CompiledProfile, CompilerOptions, MediaKind, ProfileTable, compile_profiles
from .errors import Diagnostic, DiagnosticKind, RegistryNotReadyError
from .settings import SettingsChangeNotifier, SettingsSource
from .snapshot import ConfigSnapshot, default_snapshot, load_snapshot
from .tiers import DEFAULT_CATALOG, TierCatalog

logger = logging.getLogger(__name__)

TableListener = Callable[[ProfileTable | None], None]


class ProfileRegistry:
    """Holds the current ProfileTable for concurrent readers."""

    def __init__(self, catalog: TierCatalog = DEFAULT_CATALOG, options: CompilerOptions | None = None):
        self.catalog = catalog
        self.options = options or CompilerOptions()
        self._table: ProfileTable | None = None
        self._generation = 0
        self._swap_lock = threading.Lock()
        self._listeners: list[TableListener] = []

    # -------------------------------------------------------------------------
    # Query path
    # -------------------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self._table is not None

    @property
    def generation(self) -> int:
        """Number of tables installed so far."""
        return self._generation

    def get_current_table(self) -> ProfileTable:
        """
        Get the current table.

        Raises:
            RegistryNotReadyError: Before the first reload or after clear()
        """
        table = self._table
        if table is None:
            raise RegistryNotReadyError()
        return table

    def find(self, kind: MediaKind, tier_id: int) -> CompiledProfile | None:
        """Select a profile from the current table."""
        return self.get_current_table().find(kind, tier_id)

    # -------------------------------------------------------------------------
    # Reload path
    # -------------------------------------------------------------------------

    def subscribe(self, listener: TableListener) -> None:
        """Call listener with every newly installed table (None after clear)."""
        with self._swap_lock:
            self._listeners.append(listener)

    def reload(self, source: SettingsSource) -> ProfileTable:
        """
        Load settings, compile a new table and make it current.

        An unreachable source is reported and compiled as an all-defaults
        snapshot. Never raises.

        Returns:
            The table that was installed
        """
        snapshot = self._load(source)
        table = compile_profiles(snapshot, self.catalog, self.options)
        self._install(table)
        self._log_summary(table)
        return table

    def install_snapshot(self, snapshot: ConfigSnapshot) -> ProfileTable:
        """Compile an already loaded snapshot and make it current."""
        table = compile_profiles(snapshot, self.catalog, self.options)
        self._install(table)
        self._log_summary(table)
        return table

    def clear(self) -> None:
        """Drop the current table and go back to Uninitialized."""
        with self._swap_lock:
            if self._table is None:
                return
            self._table = None
            self._notify(None)
        logger.info("Profile registry cleared")

    def attach(self, notifier: SettingsChangeNotifier, source: SettingsSource) -> Callable[[], None]:
        """
        Reload from source whenever notifier reports a change.

        Returns:
            Function that detaches the registry again
        """

        def on_change(changes) -> None:
            logger.debug(f"Settings changed ({len(changes)} keys), reloading profiles")
            self.reload(source)

        return notifier.subscribe(on_change)

    def _load(self, source: SettingsSource) -> ConfigSnapshot:
        try:
            return load_snapshot(source, self.catalog)
        except Exception as e:
            logger.warning(f"Settings unavailable, compiling from defaults: {e}")
            snapshot = default_snapshot(self.catalog)
            diagnostic = Diagnostic(DiagnosticKind.SOURCE_UNAVAILABLE, "settings", str(e) or type(e).__name__)
            return ConfigSnapshot(
                global_config=snapshot.global_config,
                per_tier=snapshot.per_tier,
                diagnostics=(diagnostic,),
            )

    def _install(self, table: ProfileTable) -> None:
        with self._swap_lock:
            self._table = table
            self._generation += 1
            self._notify(table)

    def _notify(self, table: ProfileTable | None) -> None:
        for listener in list(self._listeners):
            try:
                listener(table)
            except Exception as e:
                logger.error(f"Profile table listener failed: {e}")

    def _log_summary(self, table: ProfileTable) -> None:
        enabled = ", ".join(f"{t}p" for t in table.enabled_tiers) or "none"
        skipped = ", ".join(f"{t}p" for t in table.skipped_tiers) or "none"
        logger.info(
            f"Compiled {len(table.profiles)} profiles "
            f"(enabled: {enabled}; skipped: {skipped}; diagnostics: {len(table.diagnostics)})"
        )
        for diagnostic in table.diagnostics:
            logger.debug(str(diagnostic))
