from enum import Enum
from typing import List, Dict, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

DayType = Literal[
    "arrival",
    "departure",
    "destination-day",
    "multi-destination-day",
    "rest-day",
    "off-site-day",
    "special-event-day",
]

ConsensusLevel = Literal["high", "medium", "low", "conflict"]

# Days that anchor check-in / check-out; never reassigned.
STRUCTURALLY_FIXED: frozenset = frozenset({"arrival", "departure"})


class Strategy(str, Enum):
    CROWD_MINIMIZATION = "crowd_minimization"
    PRIORITY_COVERAGE = "priority_coverage"
    GROUP_CONSENSUS = "group_consensus"
    ENERGY_PACING = "energy_pacing"


# ------- Trip input models -------
class TripDay(BaseModel):
    # Itinerary items, hotel notes and the like ride along untouched.
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    date: str
    destination_id: Optional[str] = None
    day_type: Optional[DayType] = None
    is_locked: bool = False
    notes: Optional[str] = None


class Trip(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = "trip"
    name: str = ""
    start_date: str
    end_date: str
    days: List[TripDay] = Field(default_factory=list)


class ActivityRatingSummary(BaseModel):
    """Precomputed group rating summary for one activity at a destination."""
    model_config = ConfigDict(extra="ignore")

    activity_id: str
    destination_id: str
    average_rating: Optional[float] = None
    rating_count: int = 0
    must_do_count: int = 0
    avoid_count: int = 0
    consensus_level: Optional[ConsensusLevel] = None


# ------- Optimizer options -------
class ConstraintOverride(BaseModel):
    day_id: str
    is_locked: bool = False
    reason: Optional[str] = None


class StrategyWeights(BaseModel):
    crowd_level: float = Field(1.0, ge=0)
    must_do: float = Field(0.0, ge=0)
    energy: float = Field(0.0, ge=0)


class OptimizationOptions(BaseModel):
    model_config = ConfigDict(extra="ignore")

    strategy: Optional[Strategy] = None  # None -> run every strategy and rank them
    constraints: List[ConstraintOverride] = Field(default_factory=list)
    candidate_destinations: List[str] = Field(default_factory=list)
    weights: Optional[StrategyWeights] = None


# ------- Working models -------
class Assignment(BaseModel):
    day_id: str
    destination_id: Optional[str] = None
    date: str
    crowd_score: float
    score: float
    has_forecast: bool = False


class Constraint(BaseModel):
    day_id: str
    destination_id: Optional[str] = None
    is_locked: bool = False
    day_type: Optional[DayType] = None
    can_reassign: bool = True
    reason: Optional[str] = None


# ------- Response models -------
class Benefits(BaseModel):
    crowd_reduction_pct: float = 0.0
    priority_coverage_pct: float = 0.0
    pacing_balance_pct: float = 0.0
    estimated_minutes_saved: float = 0.0


class OptimizationAlternative(BaseModel):
    id: str
    strategy: Strategy
    assignments: List[Assignment]
    benefits: Benefits = Field(default_factory=Benefits)
    improvement_score: int = 50
    score: float = 0.0
    reasoning: List[str] = Field(default_factory=list)

    def destinations_by_day(self) -> Dict[str, Optional[str]]:
        return {a.day_id: a.destination_id for a in self.assignments}


class OptimizationResult(BaseModel):
    original_assignment: List[Assignment]
    alternatives: List[OptimizationAlternative] = Field(default_factory=list)
    confidence: int = 0
    reasoning: List[str] = Field(default_factory=list)
    notes: List[str] = Field(default_factory=list)
    summary: Optional[str] = None

    @property
    def recommended(self) -> Optional[OptimizationAlternative]:
        return self.alternatives[0] if self.alternatives else None


# ------- API payloads -------
class ForecastEntry(BaseModel):
    destination_id: str
    date: str
    crowd_level: float

    @field_validator("crowd_level")
    @classmethod
    def _within_scale(cls, value: float) -> float:
        if value < 0 or value > 10:
            raise ValueError("crowd_level must be between 0 and 10")
        return value


class OptimizeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    trip: Trip
    ratings: List[ActivityRatingSummary] = Field(default_factory=list)
    options: OptimizationOptions = OptimizationOptions()
    forecast: Optional[List[ForecastEntry]] = None
    narrate: bool = False


class ApplyRequest(BaseModel):
    days: List[TripDay]
    alternative: OptimizationAlternative
