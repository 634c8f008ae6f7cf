"""Analytics - settings, delivery and the inference model reporter.

Components:
    - config: AnalyticsSettings (pydantic-settings, env + YAML)
    - output: Output backends (console, JSONL file) and the AnalyticsHub router
    - service: AnalyticsService protocol and LocalAnalyticsService
    - reporter: InferenceAnalytics, the once-per-model emission gate

Usage:
    from augur.analytics import AnalyticsSettings, InferenceAnalytics, build_service

    settings = AnalyticsSettings(output_file="analytics.jsonl")
    reporter = InferenceAnalytics(build_service(settings), settings=settings)
"""

from augur.analytics.config import AnalyticsSettings, deep_merge
from augur.analytics.output import (
    AnalyticsHub,
    ConsoleOutput,
    FileOutput,
    OutputBackend,
)
from augur.analytics.service import (
    AnalyticsResult,
    AnalyticsService,
    LocalAnalyticsService,
    build_service,
)
from augur.analytics.reporter import (
    InferenceAnalytics,
    ReportResult,
    build_inference_event,
    get_reporter,
    inference_model_set,
    reset_reporter,
)

__all__ = [
    # Config
    "AnalyticsSettings",
    "deep_merge",
    # Output
    "AnalyticsHub",
    "ConsoleOutput",
    "FileOutput",
    "OutputBackend",
    # Service
    "AnalyticsResult",
    "AnalyticsService",
    "LocalAnalyticsService",
    "build_service",
    # Reporter
    "InferenceAnalytics",
    "ReportResult",
    "build_inference_event",
    "get_reporter",
    "inference_model_set",
    "reset_reporter",
]
