"""
Rule tables for recommendations and predictions.

Every rule is evaluated on every call, in declared order, with no
short-circuiting. Supporting data point counts and prediction confidences are
fixed per rule: they are display hints, not computed statistics.
"""

from collections.abc import Sequence

import structlog

from vitalwatch.domain.models import (
    HealthInsight,
    Prediction,
    Priority,
    Reading,
    Recommendation,
    RecommendationCategory,
    RiskLevel,
    Trend,
    VitalMetrics,
)

logger = structlog.get_logger(__name__)

ACTIVITY_AVERAGE_WINDOW = 24
PREDICTION_ACTIVITY_WINDOW = 7

HIGH_HEART_RATE = Recommendation(
    id="high-heart-rate",
    title="Elevated Heart Rate Detected",
    description=(
        "Your current heart rate is above the normal resting range. This could indicate "
        "stress, caffeine intake, or physical activity."
    ),
    category=RecommendationCategory.IMMEDIATE,
    priority=Priority.HIGH,
    actions=[
        "Take slow, deep breaths for 2-3 minutes",
        "Sit down and rest for 10-15 minutes",
        "Avoid caffeine for the next few hours",
        "Consider meditation or relaxation techniques",
    ],
    data_points=15,
)

LOW_HEART_RATE = Recommendation(
    id="low-heart-rate",
    title="Low Heart Rate Observed",
    description=(
        "Your heart rate is below the typical resting range. While this can be normal for "
        "athletes, monitor for any symptoms."
    ),
    category=RecommendationCategory.IMMEDIATE,
    priority=Priority.MEDIUM,
    actions=[
        "Note any symptoms like dizziness or fatigue",
        "Ensure adequate hydration",
        "Consider gentle movement or stretching",
    ],
    data_points=12,
)

LOW_OXYGEN = Recommendation(
    id="low-oxygen",
    title="Low Blood Oxygen Level",
    description=(
        "Blood oxygen saturation below 95% may indicate respiratory issues or poor circulation."
    ),
    category=RecommendationCategory.IMMEDIATE,
    priority=Priority.HIGH,
    actions=[
        "Practice deep breathing exercises",
        "Ensure good posture and airway clearance",
        "Move to fresh air if in a stuffy environment",
        "Contact healthcare provider if persistent",
    ],
    data_points=20,
)

ELEVATED_RISK = Recommendation(
    id="elevated-risk",
    title="Schedule a Health Check-in",
    description=(
        "Several of your vitals are outside their usual ranges at the same time. "
        "A conversation with your care team can help put them in context."
    ),
    category=RecommendationCategory.IMMEDIATE,
    priority=Priority.HIGH,
    actions=[
        "Share your recent readings with your healthcare provider",
        "Re-measure after resting for 15 minutes",
        "Keep a note of any symptoms you notice",
    ],
    data_points=25,
)

LOW_ACTIVITY = Recommendation(
    id="low-activity",
    title="Increase Daily Activity",
    description=(
        "Your recent activity levels are below recommended guidelines. Regular movement is "
        "crucial for cardiovascular health."
    ),
    category=RecommendationCategory.LIFESTYLE,
    priority=Priority.MEDIUM,
    actions=[
        "Aim for at least 10,000 steps daily",
        "Take walking breaks every hour",
        "Use stairs instead of elevators",
        "Try a 10-minute morning walk",
    ],
    data_points=48,
)

POOR_SLEEP = Recommendation(
    id="poor-sleep",
    title="Improve Sleep Quality",
    description=(
        "Your sleep quality score indicates room for improvement. Quality sleep is essential "
        "for recovery and overall health."
    ),
    category=RecommendationCategory.LIFESTYLE,
    priority=Priority.MEDIUM,
    actions=[
        "Establish a consistent bedtime routine",
        "Avoid screens 1 hour before bed",
        "Keep bedroom cool and dark",
        "Limit caffeine after 2 PM",
    ],
    data_points=30,
)

RISING_HEART_RATE = Recommendation(
    id="increasing-hr-trend",
    title="Rising Heart Rate Trend",
    description=(
        "Your heart rate has been gradually increasing. This could indicate increasing "
        "stress levels or changes in fitness."
    ),
    category=RecommendationCategory.PREVENTION,
    priority=Priority.LOW,
    actions=[
        "Monitor stress levels and practice relaxation",
        "Review recent lifestyle changes",
        "Consider cardiovascular exercise to improve fitness",
        "Track patterns with daily activities",
    ],
    data_points=20,
)

HYDRATION = Recommendation(
    id="hydration-reminder",
    title="Stay Hydrated",
    description=(
        "Proper hydration supports optimal heart function and blood oxygen transport."
    ),
    category=RecommendationCategory.PREVENTION,
    priority=Priority.LOW,
    actions=[
        "Drink 8-10 glasses of water daily",
        "Monitor urine color for hydration status",
        "Increase intake during physical activity",
        "Consider electrolyte balance during exercise",
    ],
    data_points=5,
)

NUTRITION = Recommendation(
    id="nutrition-focus",
    title="Heart-Healthy Nutrition",
    description=(
        "A balanced diet rich in omega-3 fatty acids and antioxidants supports "
        "cardiovascular health."
    ),
    category=RecommendationCategory.PREVENTION,
    priority=Priority.LOW,
    actions=[
        "Include fatty fish 2-3 times per week",
        "Eat plenty of fruits and vegetables",
        "Limit processed foods and excess sodium",
        "Consider Mediterranean-style eating patterns",
    ],
    data_points=10,
)

HEART_RATE_TREND = Prediction(
    title="Heart Rate Trend",
    description=(
        "Based on current patterns, your resting heart rate may continue to increase over "
        "the next few days."
    ),
    confidence=0.75,
    timeframe="3-5 days",
)

FITNESS_IMPROVEMENT = Prediction(
    title="Fitness Improvement",
    description=(
        "Your consistent high activity levels suggest improved cardiovascular fitness in "
        "the coming weeks."
    ),
    confidence=0.85,
    timeframe="2-3 weeks",
)

ENHANCED_RECOVERY = Prediction(
    title="Enhanced Recovery",
    description=(
        "Good sleep quality combined with increased activity suggests optimal recovery "
        "patterns."
    ),
    confidence=0.72,
    timeframe="1-2 weeks",
)

HEALTH_RISK = Prediction(
    title="Health Risk Alert",
    description=(
        "Current health patterns indicate potential risks. Following recommendations could "
        "improve outcomes."
    ),
    confidence=0.68,
    timeframe="Immediate attention needed",
)


def average_activity(history: Sequence[Reading], window: int) -> float | None:
    """
    Mean activity over the last ``window`` readings; None with no history.

    Divides by the readings actually present, not the full window, so a short
    history is not mistaken for low activity.
    """
    recent = history[-window:]
    if not recent:
        return None
    return sum(r.activity_level for r in recent) / len(recent)


def _heart_rate_rising(history: Sequence[Reading]) -> bool:
    recent = history[-10:]
    older = history[-20:-10]
    if not recent or not older:
        return False
    recent_avg = sum(r.heart_rate for r in recent) / len(recent)
    older_avg = sum(r.heart_rate for r in older) / len(older)
    return recent_avg > older_avg + 5


class RecommendationEngine:
    """Deterministic recommendation and prediction rules."""

    def __init__(self) -> None:
        self.logger = logger.bind(component="recommendation_engine")

    def recommendations(
        self,
        current: VitalMetrics,
        history: Sequence[Reading],
        insight: HealthInsight,
    ) -> list[Recommendation]:
        recs: list[Recommendation] = []

        if current.heart_rate > 100:
            recs.append(HIGH_HEART_RATE)
        elif current.heart_rate < 60:
            recs.append(LOW_HEART_RATE)

        if current.blood_oxygen < 95:
            recs.append(LOW_OXYGEN)

        if insight.risk_level == RiskLevel.HIGH:
            recs.append(ELEVATED_RISK)

        avg_activity = average_activity(history, ACTIVITY_AVERAGE_WINDOW)
        if avg_activity is not None and avg_activity < 5000:
            recs.append(LOW_ACTIVITY)

        if current.sleep_quality < 70:
            recs.append(POOR_SLEEP)

        if _heart_rate_rising(history):
            recs.append(RISING_HEART_RATE)

        recs.append(HYDRATION)
        recs.append(NUTRITION)

        self.logger.debug("recommendations_generated", ids=[r.id for r in recs])
        return recs

    def predictions(
        self,
        current: VitalMetrics,
        history: Sequence[Reading],
        insight: HealthInsight,
    ) -> list[Prediction]:
        preds: list[Prediction] = []

        if insight.trends.heart_rate == Trend.INCREASING:
            preds.append(HEART_RATE_TREND)

        recent_activity = average_activity(history, PREDICTION_ACTIVITY_WINDOW)
        if recent_activity is not None and recent_activity > 9000:
            preds.append(FITNESS_IMPROVEMENT)

        if current.sleep_quality > 80 and insight.trends.activity == Trend.INCREASING:
            preds.append(ENHANCED_RECOVERY)

        if insight.risk_level == RiskLevel.HIGH:
            preds.append(HEALTH_RISK)

        self.logger.debug("predictions_generated", titles=[p.title for p in preds])
        return preds
