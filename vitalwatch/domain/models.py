"""
Domain models for personal vital-sign monitoring.

These models represent the core health concepts and are framework-agnostic.
They use Pydantic for validation and lossless serialization.
"""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MetricName(str, Enum):
    """Canonical metrics carried by every reading."""

    HEART_RATE = "heart_rate"
    BLOOD_OXYGEN = "blood_oxygen"
    BLOOD_PRESSURE_SYSTOLIC = "blood_pressure_systolic"
    BLOOD_PRESSURE_DIASTOLIC = "blood_pressure_diastolic"
    ACTIVITY_LEVEL = "activity_level"
    SLEEP_QUALITY = "sleep_quality"


class AlertType(str, Enum):
    """Alert classification shown to users and caregivers."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Trend(str, Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


class RecommendationCategory(str, Enum):
    IMMEDIATE = "immediate"
    LIFESTYLE = "lifestyle"
    PREVENTION = "prevention"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class VitalMetrics(BaseModel):
    """Snapshot of the six canonical metrics. Absent metrics read as zero."""

    model_config = ConfigDict(frozen=True)

    heart_rate: float = Field(default=0.0, description="Beats per minute")
    blood_oxygen: float = Field(default=0.0, description="SpO2 percent")
    blood_pressure_systolic: float = Field(default=0.0, description="mmHg")
    blood_pressure_diastolic: float = Field(default=0.0, description="mmHg")
    activity_level: float = Field(default=0.0, description="Steps or equivalent")
    sleep_quality: float = Field(default=0.0, description="Sleep score 0-100")

    def value_of(self, metric: MetricName) -> float:
        return float(getattr(self, metric.value))


class Reading(VitalMetrics):
    """A single timestamped reading handed over by an ingest adapter."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    device_id: str | None = None
    device_type: str | None = None

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        """Adapters that send naive timestamps are taken to mean UTC."""
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value

    def metrics(self) -> VitalMetrics:
        """Strip provenance and return only the metric values."""
        return VitalMetrics(**{m.value: self.value_of(m) for m in MetricName})


class AnomalyCandidate(BaseModel):
    """
    Transient anomaly finding produced by the analyzer or pattern detector.

    Never stored directly: the alert manager converts it into an Alert in the
    same tick it is produced.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(description="Metric or pattern category used to derive the alert id")
    type: AlertType
    title: str
    description: str
    recommendation: str = Field(min_length=1)
    timestamp: datetime
    metric: MetricName | None = None
    value: float | None = None
    z_score: float | None = None
    severity: str | None = Field(default=None, description="Wording tier for outliers")

    @property
    def alert_id(self) -> str:
        return derive_alert_id(self.key, self.timestamp)


class Alert(BaseModel):
    """Persistent alert record. Only the read flag ever changes after creation."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: AlertType
    title: str
    description: str
    timestamp: datetime
    metric: MetricName | None = None
    value: float | None = None
    recommendation: str | None = None
    read: bool = False

    @classmethod
    def from_candidate(cls, candidate: AnomalyCandidate) -> "Alert":
        return cls(
            id=candidate.alert_id,
            type=candidate.type,
            title=candidate.title,
            description=candidate.description,
            timestamp=candidate.timestamp,
            metric=candidate.metric,
            value=candidate.value,
            recommendation=candidate.recommendation,
        )


class HealthTrends(BaseModel):
    model_config = ConfigDict(frozen=True)

    heart_rate: Trend = Trend.STABLE
    blood_oxygen: Trend = Trend.STABLE
    activity: Trend = Trend.STABLE


class HealthInsight(BaseModel):
    """Composite score, risk tier and per-metric trends for one subject."""

    model_config = ConfigDict(frozen=True)

    overall_score: int = Field(ge=0, le=100)
    risk_level: RiskLevel
    trends: HealthTrends = Field(default_factory=HealthTrends)


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    category: RecommendationCategory
    priority: Priority
    actions: tuple[str, ...] = ()
    data_points: int = Field(ge=0, description="Fixed provenance count shown as confidence hint")


class Prediction(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    confidence: float = Field(ge=0.0, le=1.0)
    timeframe: str


class EmergencyNotice(BaseModel):
    """Payload handed to external notification collaborators for critical alerts."""

    model_config = ConfigDict(frozen=True)

    subject_id: str
    alert_id: str
    alert_type: AlertType
    message: str
    recommendation: str
    metrics: VitalMetrics | None = None
    issued_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class CycleReport(BaseModel):
    """Summary of one monitoring cycle across all subjects."""

    subjects_evaluated: int = Field(ge=0)
    readings_ingested: int = Field(ge=0)
    alerts_generated: int = Field(ge=0)
    critical_alerts: int = Field(ge=0)
    degraded: bool = Field(default=False, description="At least one source failed this cycle")
    duration_seconds: float = Field(ge=0.0)
    completed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


def derive_alert_id(key: str, timestamp: datetime) -> str:
    """Stable alert id from a metric/category key and the originating timestamp."""
    return f"{key}-{int(timestamp.timestamp() * 1000)}"
