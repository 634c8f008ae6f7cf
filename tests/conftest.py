"""Shared pytest fixtures and configuration.

This file is automatically loaded by pytest and provides fixtures
accessible to all tests.
"""

import os

import pytest
import torch
import torch.nn as nn
from hypothesis import settings, HealthCheck

from augur.analytics.config import AnalyticsSettings
from augur.analytics.service import LocalAnalyticsService
from augur.contracts import (
    ActionSpec,
    CompressionType,
    ObservationSpec,
    ObservationType,
    SensorSpec,
)
from tests.helpers import CollectingBackend, RecordingService

# =============================================================================
# Hypothesis Configuration
# =============================================================================

settings.register_profile(
    "ci",
    max_examples=50,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

settings.register_profile(
    "dev",
    max_examples=10,
    deadline=None,
)

settings.register_profile(
    "thorough",
    max_examples=1000,
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "dev"))


# =============================================================================
# Environment Isolation
# =============================================================================

@pytest.fixture(autouse=True)
def clean_analytics_env(monkeypatch, tmp_path):
    """Keep AUGUR_* variables and stray .env files out of every test."""
    for key in list(os.environ):
        if key.startswith("AUGUR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture(autouse=True)
def reset_global_reporter():
    """Drop the process-wide reporter between tests."""
    from augur.analytics.reporter import reset_reporter

    reset_reporter()
    yield
    reset_reporter()


@pytest.fixture
def collecting_backend():
    return CollectingBackend()


@pytest.fixture
def recording_service():
    return RecordingService()


@pytest.fixture
def analytics_settings():
    return AnalyticsSettings(enabled=True)


@pytest.fixture
def local_service(analytics_settings, collecting_backend):
    service = LocalAnalyticsService(analytics_settings)
    service.hub.add_backend(collecting_backend)
    yield service
    service.close()


# =============================================================================
# Agent Fixtures
# =============================================================================

@pytest.fixture
def action_spec():
    return ActionSpec(num_continuous_actions=2, branch_sizes=(3, 2))


@pytest.fixture
def sensors():
    return [
        SensorSpec(name="VectorSensor", observation_spec=ObservationSpec.vector(8)),
        SensorSpec(
            name="CameraSensor",
            observation_spec=ObservationSpec.visual(84, 84, 3),
            compression_type=CompressionType.PNG,
        ),
        SensorSpec(
            name="GoalSensor",
            observation_spec=ObservationSpec.vector(2, observation_type=ObservationType.GOAL_SIGNAL),
        ),
    ]


# =============================================================================
# Model Fixtures
# =============================================================================

class TinyPolicy(nn.Module):
    """Small deterministic policy network."""

    def __init__(self):
        super().__init__()
        self.encoder = nn.Sequential(nn.Linear(8, 16), nn.ReLU(), nn.Linear(16, 16))
        self.norm = nn.BatchNorm1d(16)
        self.head = nn.Linear(16, 4)
        for param in self.parameters():
            nn.init.constant_(param, 0.1)


@pytest.fixture
def tiny_policy():
    torch.manual_seed(42)
    return TinyPolicy()


@pytest.fixture
def policy_checkpoint(tmp_path, tiny_policy):
    path = tmp_path / "policy.pt"
    torch.save(tiny_policy.state_dict(), path)
    return path
