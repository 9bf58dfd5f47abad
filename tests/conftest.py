"""
Root conftest.py: sys.path, env vars, shared fixtures.

Sets up the test environment so all production code can be imported
without Service Bus, PostgreSQL, model endpoints or Azure credentials.
"""

import os
import sys

import pytest

# Add project root to sys.path so 'core', 'services', 'config', etc. are importable
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


@pytest.fixture(autouse=True, scope="session")
def set_minimal_env_vars():
    """
    Set minimal environment variables to prevent import crashes.

    Config is loaded lazily, but anything that calls get_config() in a test
    gets local-development values instead of real infrastructure.
    """
    defaults = {
        "POSTGRES_HOST": "localhost",
        "POSTGRES_DB": "testdb",
        "APP_SCHEMA": "app",
        "SERVICE_BUS_NAMESPACE": "test.servicebus.windows.net",
        "ENVIRONMENT": "dev",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


@pytest.fixture(autouse=True)
def reset_global_config():
    """Each test sees configuration freshly loaded from its own environment."""
    from config import reset_config
    reset_config()
    yield
    reset_config()
