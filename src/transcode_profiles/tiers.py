"""
Resolution tiers - The fixed set of output resolutions profiles are built for.
"""

from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class ResolutionTier:
    """One output resolution class (e.g. 720p)."""

    id: int  # vertical resolution, also the tier identifier
    width: int
    height: int

    @property
    def label(self) -> str:
        return f"{self.id}p"


class TierCatalog:
    """Read-only, ascending list of resolution tiers."""

    def __init__(self, tiers: list[ResolutionTier]):
        self._tiers = tuple(sorted(tiers, key=lambda t: t.id))
        self._by_id = {t.id: t for t in self._tiers}

    def __iter__(self) -> Iterator[ResolutionTier]:
        return iter(self._tiers)

    def __len__(self) -> int:
        return len(self._tiers)

    def for_each_tier(self) -> tuple[ResolutionTier, ...]:
        """All tiers in ascending id order."""
        return self._tiers

    def lookup(self, tier_id: int) -> ResolutionTier | None:
        """Get a tier by id, or None if the catalog has no such tier."""
        return self._by_id.get(tier_id)

    def parse(self, value: str | int) -> ResolutionTier | None:
        """Lookup by id or label, accepting ``720``, ``"720"`` and ``"720p"``."""
        if isinstance(value, str):
            value = value.strip().lower().removesuffix("p")
            if not value.isdigit():
                return None
            value = int(value)
        return self.lookup(value)


# 16:9 dimensions for every tier
DEFAULT_CATALOG = TierCatalog(
    [
        ResolutionTier(id=144, width=256, height=144),
        ResolutionTier(id=240, width=426, height=240),
        ResolutionTier(id=360, width=640, height=360),
        ResolutionTier(id=480, width=854, height=480),
        ResolutionTier(id=720, width=1280, height=720),
        ResolutionTier(id=1080, width=1920, height=1080),
        ResolutionTier(id=1440, width=2560, height=1440),
        ResolutionTier(id=2160, width=3840, height=2160),
    ]
)


def for_each_tier() -> tuple[ResolutionTier, ...]:
    """All tiers of the default catalog in ascending order."""
    return DEFAULT_CATALOG.for_each_tier()


def lookup(tier_id: int) -> ResolutionTier | None:
    """Get a tier of the default catalog by id."""
    return DEFAULT_CATALOG.lookup(tier_id)
