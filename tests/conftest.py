import pytest

from rxguard.safe_regex import clear_caches


@pytest.fixture(autouse=True)
def fresh_caches():
    """Every test starts with empty pattern, replacement and glob caches"""
    clear_caches()
    yield
    clear_caches()
