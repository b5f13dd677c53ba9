"""
Minimal Conftest.
"""

import pytest


@pytest.fixture(autouse=True)
def reset_log_context():
    """Reset the process log context before and after each test to prevent pollution."""
    from nfprom.logging import context

    context._process_context.clear()

    yield

    context._process_context.clear()


@pytest.fixture(autouse=True)
def clear_settings_cache():
    from nfprom.settings import get_settings

    get_settings.cache_clear()

    yield

    get_settings.cache_clear()
