"""Scheduled snapshots of a progressive render.

A savepoint names an output path and a trigger: a frame count, or an
elapsed wall-clock time in seconds, minutes or hours. Each savepoint fires
at most once.

Example:
    >>> sp = Savepoint("preview.png", time=2, unit="minutes")
    >>> sp.ready_to_save(elapsed_seconds=130.0, frame_count=40)
    True
    >>> sp.mark_saved()
    >>> sp.ready_to_save(elapsed_seconds=500.0, frame_count=90)
    False
"""

from dataclasses import dataclass, field
from typing import Any

# Seconds per time unit; "frames" is handled separately
_UNIT_SECONDS = {"seconds": 1.0, "minutes": 60.0, "hours": 3600.0}

SAVEPOINT_UNITS = ("frames", *_UNIT_SECONDS)


@dataclass
class Savepoint:
    """A one-shot snapshot trigger.

    Attributes:
        path: Output image path.
        time: Threshold in ``unit``.
        unit: One of "frames", "seconds", "minutes", "hours".
        saved: Set once the snapshot has been written.
    """

    path: str
    time: float
    unit: str = "frames"
    saved: bool = field(default=False, compare=False)

    def __post_init__(self) -> None:
        if self.unit not in SAVEPOINT_UNITS:
            raise ValueError(
                f"Invalid savepoint unit '{self.unit}', expected one of {', '.join(SAVEPOINT_UNITS)}"
            )
        if self.time < 0:
            raise ValueError(f"Savepoint time = {self.time} must be non-negative")

    def ready_to_save(self, elapsed_seconds: float, frame_count: int) -> bool:
        """Check whether the trigger has been reached and not yet fired."""
        if self.saved:
            return False
        if self.unit == "frames":
            return frame_count >= self.time
        return elapsed_seconds >= self.time * _UNIT_SECONDS[self.unit]

    def mark_saved(self) -> None:
        self.saved = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Savepoint":
        """Build a savepoint from a scene-file entry."""
        try:
            return cls(path=str(data["path"]), time=float(data["time"]), unit=data.get("unit", "frames"))
        except KeyError as e:
            raise ValueError(f"Savepoint entry is missing required key {e}") from e

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "time": self.time, "unit": self.unit}
