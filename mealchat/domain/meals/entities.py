"""Meal entities owned by the local state store."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import List, Optional


class SyncStatus(str, Enum):
    """Reconciliation status of a local meal entry.

    PENDING: optimistic insert, remote create in flight
    SYNCED: mirrors a remote row, keyed by the server id
    FAILED: explicit error marker, pending retry or removal
    """

    PENDING = "pending"
    SYNCED = "synced"
    FAILED = "failed"


class MealSource(str, Enum):
    """Where a meal entry came from (wire values of the persistence API)."""

    TEXT = "text"
    VOICE = "voice"
    IMAGE = "image"
    BARCODE = "ai_scan"
    MANUAL = "manual"
    FAVORITE = "favorite"


@dataclass
class MealEntry:
    """
    Entity: durable meal record as rendered by the UI.

    Identity: local id ("tmp-N") until the remote create succeeds, then the
    server-assigned id.

    Invariants:
    - Timestamp is timezone-aware
    - Protein and calories are non-negative integers
    - A FAILED entry carries an error description
    """

    id: str
    timestamp: datetime
    description: str
    protein_g: int
    calories: Optional[int] = None
    source: MealSource = MealSource.MANUAL
    ai_estimated: bool = False
    tags: List[str] = field(default_factory=list)
    sync_status: SyncStatus = SyncStatus.PENDING
    error: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate invariants after initialization."""
        if self.timestamp.tzinfo is None:
            raise ValueError("Timestamp must be timezone-aware (use UTC)")

        if self.protein_g < 0:
            raise ValueError(f"Protein cannot be negative, got {self.protein_g}")

        if self.calories is not None and self.calories < 0:
            raise ValueError(f"Calories cannot be negative, got {self.calories}")

        if self.sync_status is SyncStatus.FAILED and not self.error:
            raise ValueError("A failed entry must carry an error description")

    @property
    def is_synced(self) -> bool:
        return self.sync_status is SyncStatus.SYNCED

    def local_day(self) -> date:
        return self.timestamp.astimezone(timezone.utc).date()


@dataclass(frozen=True)
class MealRecord:
    """Create payload sent to the remote persistence API."""

    description: str
    timestamp: datetime
    protein_g: int
    calories: Optional[int]
    source: MealSource
    ai_estimated: bool
    tags: List[str] = field(default_factory=list)
    carbs_g: Optional[int] = None
    fat_g: Optional[int] = None


@dataclass(frozen=True)
class RemoteMeal:
    """Meal row echoed by the remote persistence API."""

    id: str
    description: str
    timestamp: datetime
    protein_g: float
    calories: Optional[float] = None
    source: Optional[str] = None
    ai_estimated: bool = False
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class MealTemplate:
    """Meal template returned when a favorite is reused (values not yet clamped)."""

    description: str
    protein_g: float
    calories: Optional[float] = None
    carbs_g: Optional[float] = None
    fat_g: Optional[float] = None
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class FavoriteMeal:
    """Saved favorite meal."""

    id: str
    name: str
    description: str
    protein_g: float
    calories: Optional[float] = None
    use_count: int = 0
    tags: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class UserSettings:
    """Daily goals."""

    protein_goal_g: int = 120
    calorie_goal: int = 2000

    def __post_init__(self) -> None:
        if self.protein_goal_g <= 0:
            raise ValueError(f"protein_goal_g must be positive, got {self.protein_goal_g}")
        if self.calorie_goal <= 0:
            raise ValueError(f"calorie_goal must be positive, got {self.calorie_goal}")


@dataclass(frozen=True)
class DailyProgress:
    """Totals for one day against the user's goals."""

    day: date
    protein_g: int
    calories: int
    protein_goal_g: int
    calorie_goal: int
    meal_count: int

    @property
    def protein_percent(self) -> float:
        return round(100.0 * self.protein_g / self.protein_goal_g, 1)

    @property
    def calorie_percent(self) -> float:
        return round(100.0 * self.calories / self.calorie_goal, 1)

    @property
    def protein_remaining_g(self) -> int:
        return max(0, self.protein_goal_g - self.protein_g)
