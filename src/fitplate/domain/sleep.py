"""Sleep samples supplied by a wearable source."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class SleepStage(StrEnum):
    """Sleep analysis category of a sample."""

    IN_BED = "in_bed"
    AWAKE = "awake"
    ASLEEP_CORE = "asleep_core"
    ASLEEP_DEEP = "asleep_deep"
    ASLEEP_REM = "asleep_rem"
    ASLEEP_UNSPECIFIED = "asleep_unspecified"


ASLEEP_STAGES = frozenset(
    {
        SleepStage.ASLEEP_CORE,
        SleepStage.ASLEEP_DEEP,
        SleepStage.ASLEEP_REM,
        SleepStage.ASLEEP_UNSPECIFIED,
    }
)


@dataclass(frozen=True)
class SleepSample:
    """Timestamped interval in one sleep stage."""

    start: datetime
    end: datetime
    stage: SleepStage

    @property
    def seconds(self) -> float:
        return max(0.0, (self.end - self.start).total_seconds())
