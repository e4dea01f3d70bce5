"""Threshold-based occupancy classification."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from models.records import OccupancyTier


class ClassificationMode(str, Enum):
    absolute = "absolute"
    capacity = "capacity"


@dataclass(frozen=True)
class ClassifierProfile:
    """Ascending tiers and the inclusive upper boundary of each non-top tier.

    ``tiers[0]`` is reserved for a count of zero. ``boundaries[i]`` is the
    largest value still classified as ``tiers[i + 1]``; anything above the
    last boundary lands in ``tiers[-1]``.
    """

    name: str
    tiers: Tuple[OccupancyTier, ...]
    boundaries: Tuple[float, ...]
    mode: ClassificationMode = ClassificationMode.absolute
    default_capacity: int = 10

    def __post_init__(self) -> None:
        if len(self.tiers) < 2:
            raise ValueError("A profile needs at least two tiers.")
        if len(self.boundaries) != len(self.tiers) - 2:
            raise ValueError(
                f"Profile {self.name!r} needs {len(self.tiers) - 2} boundaries, "
                f"got {len(self.boundaries)}."
            )
        previous = 0.0
        for boundary in self.boundaries:
            if boundary <= previous:
                raise ValueError(
                    f"Profile {self.name!r} boundaries must be positive and strictly ascending."
                )
            previous = boundary
        if self.default_capacity <= 0:
            raise ValueError("default_capacity must be positive.")


THREE_TIER = ClassifierProfile(
    name="three_tier",
    tiers=(OccupancyTier.empty, OccupancyTier.moderate, OccupancyTier.full),
    boundaries=(5,),
)

FOUR_TIER = ClassifierProfile(
    name="four_tier",
    tiers=(
        OccupancyTier.empty,
        OccupancyTier.light,
        OccupancyTier.moderate,
        OccupancyTier.busy,
    ),
    boundaries=(3, 8),
)

# Fractions of capacity used when a profile runs in capacity mode without
# explicit boundaries.
_CAPACITY_BOUNDARIES = {
    "three_tier": (0.5,),
    "four_tier": (0.3, 0.7),
}

PROFILES: Dict[str, ClassifierProfile] = {
    THREE_TIER.name: THREE_TIER,
    FOUR_TIER.name: FOUR_TIER,
}


def build_profile(
    name: str,
    boundaries: Optional[Tuple[float, ...]] = None,
    mode: str | ClassificationMode = ClassificationMode.absolute,
    default_capacity: int = 10,
) -> ClassifierProfile:
    """Resolve a named profile, applying boundary and mode overrides."""
    try:
        base = PROFILES[name]
    except KeyError as exc:
        known = ", ".join(sorted(PROFILES))
        raise ValueError(f"Unknown occupancy profile {name!r}; expected one of {known}.") from exc

    resolved_mode = ClassificationMode(mode)
    if boundaries is None:
        if resolved_mode is ClassificationMode.capacity:
            boundaries = _CAPACITY_BOUNDARIES[base.name]
        else:
            boundaries = base.boundaries

    return ClassifierProfile(
        name=base.name,
        tiers=base.tiers,
        boundaries=tuple(boundaries),
        mode=resolved_mode,
        default_capacity=default_capacity,
    )


class OccupancyClassifier:
    """Pure mapping from a non-negative count to an occupancy tier."""

    def __init__(
        self,
        profile: ClassifierProfile = THREE_TIER,
        capacities: Optional[Mapping[str, int]] = None,
    ) -> None:
        self.profile = profile
        self._capacities: Dict[str, int] = dict(capacities or {})

    @property
    def tiers(self) -> Tuple[OccupancyTier, ...]:
        return self.profile.tiers

    def capacity_for(self, room_id: str) -> Optional[int]:
        if self.profile.mode is not ClassificationMode.capacity:
            return self._capacities.get(room_id)
        return self._capacities.get(room_id, self.profile.default_capacity)

    def classify(self, count: int, capacity: Optional[int] = None) -> OccupancyTier:
        if count < 0:
            raise ValueError("count must be non-negative")
        if count == 0:
            return self.profile.tiers[0]

        value: float = count
        if self.profile.mode is ClassificationMode.capacity:
            effective = capacity if capacity and capacity > 0 else self.profile.default_capacity
            value = count / effective

        for index, boundary in enumerate(self.profile.boundaries):
            if value <= boundary:
                return self.profile.tiers[index + 1]
        return self.profile.tiers[-1]

    def classify_room(self, room_id: str, count: int) -> OccupancyTier:
        return self.classify(count, self.capacity_for(room_id))
