from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from habitpulse.models.analytics import Analytics, Insight
from habitpulse.models.enums import MutationKind
from habitpulse.utils.datetime_utils import utc_now
from habitpulse.utils.validators import is_valid_date_key


# Requests from the UI

class MutationRequest(BaseModel):
    habit_id: str = Field(..., min_length=1, max_length=128)
    action: MutationKind
    date_key: Optional[str] = None  # today when omitted
    value: Optional[float] = Field(None, ge=0)

    @field_validator('habit_id')
    @classmethod
    def validate_habit_id(cls, v):
        if not v.strip():
            raise ValueError('habit_id cannot be blank')
        return v.strip()

    @field_validator('date_key')
    @classmethod
    def validate_date_key(cls, v):
        if v is not None and not is_valid_date_key(v):
            raise ValueError('date_key must be a real date in YYYY-MM-DD format')
        return v

    @model_validator(mode='after')
    def check_value(self):
        if self.action == MutationKind.UPDATE_PROGRESS and self.value is None:
            raise ValueError('update-progress needs a value')
        return self


# Payloads for the UI

class AnalyticsPayload(BaseModel):
    habit_id: str
    current_streak: int = 0
    longest_streak: int = 0
    completion_rate: float = Field(0.0, ge=0, le=100)
    total_days: int = 0
    completed_days: int = 0
    last_computed: datetime

    @classmethod
    def from_analytics(cls, habit_id: str, analytics: Analytics) -> "AnalyticsPayload":
        return cls(habit_id=habit_id, **analytics.to_dict())


class InsightPayload(BaseModel):
    id: str
    type: str
    message: str
    actionable: bool = True
    recommendation: Optional[str] = None
    confidence: str = "low"
    data_support: int = 0

    @classmethod
    def from_insight(cls, insight: Insight) -> "InsightPayload":
        return cls(**insight.to_dict())


class APIResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Any] = None
    errors: Optional[List[str]] = None
    can_retry: bool = False
    is_network_error: bool = False
    timestamp: datetime = Field(default_factory=utc_now)
