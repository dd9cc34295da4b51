"""Pytest configuration and fixtures for converter tests."""
import sys
from pathlib import Path

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi.testclient import TestClient

from quconvert.core.config import Settings
from quconvert.main import app
from quconvert.services.pipeline import ConversionPipeline


@pytest.fixture
def client() -> TestClient:
    """FastAPI test client"""
    return TestClient(app)


@pytest.fixture
def pipeline() -> ConversionPipeline:
    """Pipeline with default settings."""
    return ConversionPipeline(Settings())


@pytest.fixture
def shallow_settings() -> Settings:
    """Settings that refuse any nested maple call."""
    return Settings(max_delegation_depth=1)


@pytest.fixture
def sample_algorithm() -> str:
    """A small exercise algorithm."""
    return (
        '$speed=rint(2,10);'
        '$time=range(1,5);'
        '$dist=$speed$time;'
        '$ans=decimal(2,$dist/3);'
        'condition:gt($dist,4);'
    )
