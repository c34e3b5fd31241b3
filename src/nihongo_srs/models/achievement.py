"""Achievement catalog models.

Each unlock condition is its own model, tagged by ``type``, so that
evaluation can match on the concrete condition class.
"""

from typing import Annotated, Literal

from pydantic import Field

from nihongo_srs.models.base import CamelModel


class StreakCondition(CamelModel):
    type: Literal["streak"] = "streak"
    target: int


class TotalXPCondition(CamelModel):
    type: Literal["total_xp"] = "total_xp"
    target: int


class AccuracyCondition(CamelModel):
    type: Literal["accuracy"] = "accuracy"
    target: float  # percent, measured on the last session


class MasteryCondition(CamelModel):
    type: Literal["mastery"] = "mastery"
    target: int  # characters at the top mastery level


class SessionsCondition(CamelModel):
    type: Literal["sessions"] = "sessions"
    target: int


class TimeCondition(CamelModel):
    type: Literal["time"] = "time"
    target: int = 0


AchievementCondition = Annotated[
    StreakCondition
    | TotalXPCondition
    | AccuracyCondition
    | MasteryCondition
    | SessionsCondition
    | TimeCondition,
    Field(discriminator="type"),
]


class Achievement(CamelModel):
    id: str
    name: str
    description: str
    icon: str = ""
    xp_reward: int = 0
    condition: AchievementCondition
