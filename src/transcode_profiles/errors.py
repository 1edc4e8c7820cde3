"""
Errors and diagnostics.

Compilation never fails: problems with the settings are recovered locally
and reported as Diagnostic values. Exceptions exist only for the two
signals that cross the public API.
"""

from dataclasses import dataclass
from enum import Enum


class DiagnosticKind(Enum):
    """Category of a recovered problem."""

    VALIDATION_FALLBACK = "validation_fallback"  # field absent or not coercible
    CONFIGURATION_GAP = "configuration_gap"  # enabled tier without a codec
    SOURCE_UNAVAILABLE = "source_unavailable"  # settings could not be fetched


@dataclass(frozen=True)
class Diagnostic:
    """A problem that was recovered by substituting a documented default."""

    kind: DiagnosticKind
    key: str
    message: str

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.key}: {self.message}"


class TranscodeProfilesError(Exception):
    """Base class for errors raised by this package."""


class RegistryNotReadyError(TranscodeProfilesError):
    """Raised when the profile table is queried before the first compilation."""

    def __init__(self, message: str = "Profile registry is not ready (no table compiled yet)"):
        super().__init__(message)


class SettingsSourceUnavailable(TranscodeProfilesError):
    """Raised by a settings source that cannot be reached."""
