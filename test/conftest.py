import pytest
from loguru import logger

from config.feature_flags import set_flag
from parametric import CodeManager


# Global Feature Flag Defaults - Single Source of Truth for Test Isolation
# ========================================================================
# WICHTIG: Jeder Test muss mit sauberen Feature-Flags starten.
# Diese Defaults müssen mit config/feature_flags.py synchron gehalten werden.
FEATURE_FLAG_DEFAULTS = {
    # Debug-Modi
    "history_debug_logging": False,

    # Laufzeit-Prüfungen
    "owner_thread_check": True,
    "strict_argument_types": True,
}


@pytest.fixture(autouse=True)
def _global_feature_flag_isolation():
    """
    Stellt sicher, dass jeder Test mit sauberen, deterministischen
    Feature-Flags startet.
    """
    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)

    yield

    for key, value in FEATURE_FLAG_DEFAULTS.items():
        set_flag(key, value)


@pytest.fixture
def manager():
    """Frischer CodeManager pro Test."""
    return CodeManager()


@pytest.fixture
def log_messages():
    """Sammelt loguru-Meldungen (Level + Text) während des Tests."""
    messages = []
    handler_id = logger.add(lambda m: messages.append((m.record["level"].name, m.record["message"])),
                            level="DEBUG")
    yield messages
    logger.remove(handler_id)
