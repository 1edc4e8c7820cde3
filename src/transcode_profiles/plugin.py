"""
Plugin lifecycle - Wire the registry to the host's settings and executor.

TranscoderPlugin is the explicit context object a host creates once. It
owns the registry and keeps the executor in sync with the current table:
every installed table is published as remove_all() followed by the new
profiles and priorities.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from .compiler import (
    CompiledProfile,
    CompilerOptions,
    EncoderPriorityEntry,
    MediaKind,
    ProfileTable,
    build_argument_list,
)
from .errors import RegistryNotReadyError
from .registry import ProfileRegistry
from .settings import SettingsChangeNotifier, SettingsSource, all_keys, changed_keys_touch
from .tiers import DEFAULT_CATALOG, TierCatalog

logger = logging.getLogger(__name__)


class TranscodingExecutor(Protocol):
    """The host's transcoding manager, as seen from this package."""

    def add_profile(self, profile: CompiledProfile) -> None: ...

    def add_encoder_priority(self, entry: EncoderPriorityEntry) -> None: ...

    def remove_all(self) -> None:
        """Remove every profile and priority this package registered."""
        ...


@dataclass
class JobArguments:
    """What an encoding job applies: options before and after the encoder selection."""

    tier_id: int
    profile_name: str
    video_encoder: str
    audio_encoder: str | None
    input_options: list[str] = field(default_factory=list)
    output_options: list[str] = field(default_factory=list)


class InMemoryExecutor:
    """
    Reference executor that keeps registrations in memory.

    Jobs ask the registry for the current table at call time, so a reload
    during a job never changes the arguments that job already obtained.
    """

    def __init__(self, registry: ProfileRegistry | None = None):
        self.registry = registry
        self.profiles: list[CompiledProfile] = []
        self.priorities: list[EncoderPriorityEntry] = []
        self.remove_count = 0
        self._lock = threading.Lock()

    def bind(self, registry: ProfileRegistry) -> None:
        """Answer job queries from this registry."""
        self.registry = registry

    def add_profile(self, profile: CompiledProfile) -> None:
        with self._lock:
            self.profiles.append(profile)

    def add_encoder_priority(self, entry: EncoderPriorityEntry) -> None:
        with self._lock:
            self.priorities.append(entry)

    def remove_all(self) -> None:
        with self._lock:
            self.profiles.clear()
            self.priorities.clear()
            self.remove_count += 1

    def select(self, kind: MediaKind, tier_id: int) -> CompiledProfile | None:
        """Pick the profile for a job of this kind and tier from the current table."""
        if self.registry is None:
            raise RegistryNotReadyError("Executor is not bound to a registry")
        return self.registry.find(kind, tier_id)

    def job_arguments(self, tier_id: int) -> JobArguments | None:
        """Arguments for a video job at a tier, or None if the tier is not produced."""
        if self.registry is None:
            raise RegistryNotReadyError("Executor is not bound to a registry")

        table = self.registry.get_current_table()
        video = table.find(MediaKind.VIDEO, tier_id)
        if video is None:
            return None
        audio = table.find(MediaKind.AUDIO, tier_id)

        arguments = build_argument_list(video, audio)
        input_options = list(video.input_options) + (list(audio.input_options) if audio else [])

        return JobArguments(
            tier_id=tier_id,
            profile_name=video.profile_name,
            video_encoder=video.encoder_name,
            audio_encoder=audio.encoder_name if audio else None,
            input_options=input_options,
            output_options=arguments[len(input_options) :],
        )


class TranscoderPlugin:
    """
    Host-facing lifecycle: on_start() compiles and registers, on_stop() tears down.

    Args:
        source: Where settings are read from
        executor: Host transcoding manager to register profiles with
        notifier: Optional change notifications; each one triggers a reload
        catalog: Resolution tiers
        options: Compiler options (naming variant, priority score)
    """

    def __init__(
        self,
        source: SettingsSource,
        executor: TranscodingExecutor,
        notifier: SettingsChangeNotifier | None = None,
        catalog: TierCatalog = DEFAULT_CATALOG,
        options: CompilerOptions | None = None,
    ):
        self.source = source
        self.executor = executor
        self.notifier = notifier
        self.registry = ProfileRegistry(catalog, options)
        self._relevant_keys = all_keys(catalog)
        self._unsubscribe: Callable[[], None] | None = None
        self.publish_error: str | None = None  # set when the executor rejected the last table
        self.registry.subscribe(self._publish)

    @property
    def is_running(self) -> bool:
        return self.registry.is_ready

    @property
    def is_published(self) -> bool:
        """Whether the executor holds the whole current table."""
        return self.registry.is_ready and self.publish_error is None

    def on_start(self) -> ProfileTable:
        """Compile the first table, register it and start listening for changes."""
        logger.info("Registering custom transcoder profiles...")
        table = self.registry.reload(self.source)
        if self.notifier is not None and self._unsubscribe is None:
            self._unsubscribe = self.notifier.subscribe(self._on_settings_change)
        if self.publish_error is None:
            logger.info("Custom transcoder profiles registered.")
        else:
            logger.warning(f"Custom transcoder profiles compiled but not registered: {self.publish_error}")
        return table

    def on_stop(self) -> None:
        """Stop listening, drop the table and remove everything registered."""
        logger.info("Unregistering custom transcoder profiles...")
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.registry.clear()
        self.executor.remove_all()
        self.publish_error = None
        logger.info("Custom transcoder profiles unregistered.")

    def reload(self) -> ProfileTable:
        """Explicit reload trigger."""
        return self.registry.reload(self.source)

    def _on_settings_change(self, changes: Mapping[str, Any]) -> None:
        if changes and not changed_keys_touch(changes, self._relevant_keys):
            logger.debug("Settings change does not concern transcoding, ignoring")
            return
        self.registry.reload(self.source)

    def _publish(self, table: ProfileTable | None) -> None:
        # Runs under the registry swap lock, so publications follow swap order
        if table is None:
            return

        # The executor must hold either the whole table or nothing
        error: Exception | None = None
        for attempt in (1, 2):
            try:
                self._register(table)
            except Exception as e:
                error = e
                logger.warning(f"Publishing profiles failed (attempt {attempt}): {e}")
                self._withdraw()
            else:
                self.publish_error = None
                logger.debug(f"Published {len(table.profiles)} profiles and {len(table.priorities)} priorities")
                return

        self.publish_error = str(error) or type(error).__name__
        logger.error(f"Executor rejected the profile table, nothing is registered: {self.publish_error}")

    def _register(self, table: ProfileTable) -> None:
        self.executor.remove_all()
        for profile in table.profiles:
            self.executor.add_profile(profile)
        for entry in table.priorities:
            self.executor.add_encoder_priority(entry)

    def _withdraw(self) -> None:
        try:
            self.executor.remove_all()
        except Exception as e:
            logger.error(f"Removing partially published profiles failed: {e}")
