from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any
from datetime import datetime


class ParameterCombination(BaseModel):
    """One point of the investment parameter grid.

    ``annual_return`` is a percentage (7 means 7%). ``goal`` and ``priority``
    are derived by the enumerator and left empty for caller-supplied values.
    """
    initial_amount: float = Field(ge=0, le=10_000_000)
    monthly_contribution: float = Field(ge=0, le=100_000)
    annual_return: float = Field(ge=0, le=50)
    time_horizon: int = Field(ge=1, le=100)
    goal: Optional[str] = None
    priority: Optional[int] = None

    def inputs(self) -> Dict[str, Any]:
        """Numeric inputs only, without derived labels."""
        return self.model_dump(exclude={"goal", "priority"})


class ScenarioMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    slug: str
    locale: str
    params: Dict[str, Any] = {}
    generated_at: datetime


class ScenarioCacheValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    metadata: ScenarioMetadata


class CacheStats(BaseModel):
    total: int
    valid: int
    expired: int
    max_size: int
    hit_rate: float = 0.0
    hits: int = 0
    misses: int = 0
    approx_bytes: Optional[int] = None


class GenerationError(BaseModel):
    params: Dict[str, Any] = {}
    locale: str
    message: str


class GenerationResult(BaseModel):
    """Report for one pre-generation batch."""
    total_generated: int = 0
    by_goal: Dict[str, int] = {}
    by_locale: Dict[str, int] = {}
    processing_time: float = 0.0  # seconds
    errors: List[GenerationError] = []
    attempted: int = 0
    stopped: bool = False

    def record_success(self, goal: str, locale: str) -> None:
        self.total_generated += 1
        self.by_goal[goal] = self.by_goal.get(goal, 0) + 1
        self.by_locale[locale] = self.by_locale.get(locale, 0) + 1


class RunRecord(BaseModel):
    """What the CLI persists as ``results.json`` for one run."""
    run_id: str
    created_at: datetime
    mode: str  # grid|custom
    locales: List[str]
    max_scenarios: Optional[int] = None
    min_priority: int = 0
    estimated_total: Optional[int] = None
    result: GenerationResult
