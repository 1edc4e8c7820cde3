"""Tests for the profile registry and hot reload."""

import threading

import pytest

from transcode_profiles.compiler import CompilerOptions, MediaKind, ProfileNaming, compile_profiles
from transcode_profiles.errors import DiagnosticKind, RegistryNotReadyError, SettingsSourceUnavailable
from transcode_profiles.registry import ProfileRegistry
from transcode_profiles.settings import InMemorySettings
from transcode_profiles.snapshot import default_snapshot, snapshot_from_values


class _UnreachableSource:
    def fetch(self, keys):
        raise SettingsSourceUnavailable("store offline")


class _BrokenSource:
    def fetch(self, keys):
        raise RuntimeError("boom")


class TestStates:
    """Tests for Uninitialized / Ready transitions."""

    def test_not_ready_initially(self):
        """Test querying before the first reload signals not ready."""
        registry = ProfileRegistry()
        assert not registry.is_ready
        with pytest.raises(RegistryNotReadyError):
            registry.get_current_table()

    def test_ready_after_reload(self, memory_settings):
        """Test the first reload makes the registry ready."""
        registry = ProfileRegistry()
        table = registry.reload(memory_settings)

        assert registry.is_ready
        assert registry.get_current_table() is table
        assert registry.generation == 1

    def test_clear(self, memory_settings):
        """Test clear() goes back to not ready."""
        registry = ProfileRegistry()
        registry.reload(memory_settings)
        registry.clear()

        assert not registry.is_ready
        with pytest.raises(RegistryNotReadyError):
            registry.find(MediaKind.VIDEO, 720)

    def test_clear_when_not_ready(self):
        """Test clear() on an empty registry is a no-op."""
        registry = ProfileRegistry()
        registry.clear()
        assert not registry.is_ready


class TestReload:
    """Tests for reload()."""

    def test_idempotent(self, memory_settings):
        """Test two reloads of unchanged settings give equal tables."""
        registry = ProfileRegistry()
        first = registry.reload(memory_settings)
        second = registry.reload(memory_settings)

        assert first is not second
        assert first == second
        assert [p.profile_name for p in first.profiles] == [p.profile_name for p in second.profiles]

    def test_reload_picks_up_changes(self, memory_settings):
        """Test changed settings produce a new table."""
        registry = ProfileRegistry()
        registry.reload(memory_settings)
        memory_settings.update({"resolution_720p_codec": "libx265"})
        registry.reload(memory_settings)

        assert registry.find(MediaKind.VIDEO, 720).encoder_name == "libx265"

    def test_old_table_unaffected(self, memory_settings):
        """Test a table held by a reader keeps its contents after a reload."""
        registry = ProfileRegistry()
        held = registry.reload(memory_settings)
        memory_settings.update({"resolution_720p_enabled": False})
        registry.reload(memory_settings)

        assert held.find(MediaKind.VIDEO, 720) is not None
        assert registry.find(MediaKind.VIDEO, 720) is None

    @pytest.mark.parametrize("source", [_UnreachableSource(), _BrokenSource()])
    def test_unavailable_source_compiles_defaults(self, source):
        """Test an unreachable source falls back to an all-defaults table."""
        registry = ProfileRegistry()
        table = registry.reload(source)

        assert table == compile_profiles(default_snapshot())
        assert [d.kind for d in table.diagnostics] == [DiagnosticKind.SOURCE_UNAVAILABLE]

    def test_bad_value_is_not_source_unavailable(self, scenario_values):
        """Test one uncoercible value keeps the rest of the user settings."""
        scenario_values["transcode_threads"] = "\u00b2"
        registry = ProfileRegistry()

        table = registry.reload(InMemorySettings(scenario_values))

        assert 144 in table.skipped_tiers
        assert 144 not in table.enabled_tiers
        assert [(d.kind, d.key) for d in table.diagnostics] == [
            (DiagnosticKind.VALIDATION_FALLBACK, "transcode_threads")
        ]

    def test_unavailable_source_replaces_previous(self, memory_settings):
        """Test a failed fetch does not keep a stale table."""
        registry = ProfileRegistry()
        registry.reload(InMemorySettings({"resolution_720p_enabled": False}))
        registry.reload(_UnreachableSource())

        assert registry.find(MediaKind.VIDEO, 720) is not None

    def test_uses_options(self, memory_settings):
        """Test the registry compiles with its options."""
        registry = ProfileRegistry(options=CompilerOptions(naming=ProfileNaming.FIXED, fixed_profile_name="x"))
        table = registry.reload(memory_settings)
        assert {p.profile_name for p in table.profiles} == {"x"}

    def test_install_snapshot(self, scenario_values):
        """Test installing an already loaded snapshot."""
        registry = ProfileRegistry()
        table = registry.install_snapshot(snapshot_from_values(scenario_values))
        assert registry.get_current_table() is table

    def test_listeners(self, memory_settings):
        """Test listeners see every installed table and the clear."""
        registry = ProfileRegistry()
        seen = []
        registry.subscribe(seen.append)

        table = registry.reload(memory_settings)
        registry.clear()

        assert seen == [table, None]

    def test_failing_listener_does_not_break_reload(self, memory_settings):
        """Test a listener exception is logged, not raised."""
        registry = ProfileRegistry()

        def broken(table):
            raise RuntimeError("listener failed")

        registry.subscribe(broken)
        registry.reload(memory_settings)

        assert registry.is_ready

    def test_attach_reloads_on_change(self, memory_settings):
        """Test change notifications trigger a reload."""
        registry = ProfileRegistry()
        registry.reload(memory_settings)
        detach = registry.attach(memory_settings, memory_settings)

        memory_settings.update({"audio_codec": "libopus"})
        assert registry.find(MediaKind.AUDIO, 720).encoder_name == "libopus"

        detach()
        memory_settings.update({"audio_codec": "aac"})
        assert registry.find(MediaKind.AUDIO, 720).encoder_name == "libopus"


class TestConcurrency:
    """Readers and reloads running at the same time."""

    def test_readers_never_see_mixed_tables(self, scenario_values):
        """Test every table a reader observes is one of the known compiled tables."""
        variant_a = dict(scenario_values)
        variant_b = dict(scenario_values)
        variant_b.update(
            {
                "audio_codec": "libopus",
                "audio_params": "-b:a 96k",
                "transcode_threads": 2,
                "resolution_720p_codec": "libx265",
                "resolution_360p_enabled": False,
            }
        )
        expected = [
            compile_profiles(snapshot_from_values(variant_a)),
            compile_profiles(snapshot_from_values(variant_b)),
        ]

        source = InMemorySettings(variant_a)
        registry = ProfileRegistry()
        registry.reload(source)

        stop = threading.Event()
        errors: list[str] = []
        observed = 0
        observed_lock = threading.Lock()

        def reader():
            nonlocal observed
            while not stop.is_set():
                table = registry.get_current_table()
                if table not in expected:
                    errors.append("reader saw an unknown table")
                    return
                # Audio and video of one table must come from the same settings
                audio = {p.encoder_name for p in table.profiles_for(MediaKind.AUDIO)}
                if len(audio) != 1:
                    errors.append(f"mixed audio encoders: {audio}")
                    return
                with observed_lock:
                    observed += 1

        def writer(values, rounds):
            for _ in range(rounds):
                source.update(values)
                registry.reload(source)

        readers = [threading.Thread(target=reader) for _ in range(8)]
        writers = [
            threading.Thread(target=writer, args=(variant_a, 50)),
            threading.Thread(target=writer, args=(variant_b, 50)),
        ]
        for t in readers + writers:
            t.start()
        for t in writers:
            t.join()
        stop.set()
        for t in readers:
            t.join()

        assert errors == []
        assert observed > 0
        assert registry.get_current_table() in expected
        assert registry.generation == 101
