"""
Core services for the monitoring pipeline.

This package contains the window store, anomaly analysis, alert lifecycle,
scoring and recommendation engines, and the service that ties them together.
"""

from .alert_manager import AlertManager
from .insight_engine import InsightEngine, risk_level_for, score
from .monitoring import HealthMonitoringService, SubjectState
from .pattern_detector import PatternDetector
from .reading_collector import ReadingCollector, ReadingCollectorConfig, ReadingSource
from .recommendation_engine import RecommendationEngine
from .result import Result
from .statistical_analyzer import StatisticalAnalyzer, ThresholdMonitor
from .window_store import MetricWindowStore

__all__ = [
    "AlertManager",
    "HealthMonitoringService",
    "InsightEngine",
    "MetricWindowStore",
    "PatternDetector",
    "ReadingCollector",
    "ReadingCollectorConfig",
    "ReadingSource",
    "RecommendationEngine",
    "Result",
    "StatisticalAnalyzer",
    "SubjectState",
    "ThresholdMonitor",
    "risk_level_for",
    "score",
]
