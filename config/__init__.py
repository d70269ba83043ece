"""
ParaCore - Configuration Module
===============================

Zentrale Konfiguration für alle globalen Einstellungen.
"""

from .tolerances import Tolerances, dimension_tolerance, volume_precision
from .feature_flags import is_enabled, set_flag, get_all_flags, FEATURE_FLAGS
from .version import VERSION, VERSION_STRING, APP_NAME, HISTORY_FORMAT_VERSION
