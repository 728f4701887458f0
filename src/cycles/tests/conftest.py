"""Shared fixtures for cycle derivation, insight and reminder tests."""

from __future__ import annotations

from datetime import date

import pytest

from src.cycles.deriver import CycleDeriver
from src.cycles.insights import CycleInsightsEngine, PredictionConfig
from src.storage.memory import InMemoryStorage

# Canonical test user and base date
TEST_USER_ID = 1
BASE_DATE = date(2024, 1, 1)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def deriver(storage: InMemoryStorage) -> CycleDeriver:
    return CycleDeriver(storage)


@pytest.fixture
def prediction_config() -> PredictionConfig:
    return PredictionConfig()


@pytest.fixture
def insights_engine(prediction_config: PredictionConfig) -> CycleInsightsEngine:
    return CycleInsightsEngine(prediction_config)
