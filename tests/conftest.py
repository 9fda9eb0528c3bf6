"""
Test configuration for the device attestation test suite.
"""

import os

import pytest

from tests.fixtures.pki import build_attestation_pki, random_nonce


# Test markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
    config.addinivalue_line("markers", "crypto: mark test as exercising real signatures")


# Collection settings
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        if "crypto" in str(item.fspath) or "verifier" in str(item.fspath):
            item.add_marker(pytest.mark.crypto)


# Test environment setup
@pytest.fixture(scope="session", autouse=True)
def test_environment_setup():
    """Set up test environment."""
    original_env = os.environ.copy()

    os.environ["DAC_ENV"] = "testing"
    os.environ["LOG_LEVEL"] = "DEBUG"
    os.environ.pop("DAC_CONFIG_FILE", None)

    yield

    # Restore environment
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture(scope="session")
def attestation_pki():
    """PAA/PAI/DAC hierarchy shared by the session."""
    return build_attestation_pki()


@pytest.fixture
def nonce():
    return random_nonce()


@pytest.fixture
def challenge():
    return bytes(range(16))
