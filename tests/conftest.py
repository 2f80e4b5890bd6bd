import pytest

from simpleai.config import get_settings
from simpleai.providers.factory import reset_factory


@pytest.fixture(autouse=True)
def clean_singletons(monkeypatch):
    """Isolate tests from the developer's environment and global singletons."""
    for var in ("SIMPLEAI_CONFIG_PATH", "SIMPLEAI_DEFAULT_PROVIDER", "SIMPLEAI_GOOGLE_API_KEY"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    reset_factory()
    yield
    get_settings.cache_clear()
    reset_factory()
