"""
ParaCore - Zentrale Versionsverwaltung
======================================

Alle Versionsinformationen werden hier zentral gepflegt.
Import: from config.version import VERSION, VERSION_STRING, APP_NAME
"""

# Haupt-Versionsnummer (Semantic Versioning: MAJOR.MINOR.PATCH)
VERSION_MAJOR = 0
VERSION_MINOR = 1
VERSION_PATCH = 0

# Release-Typ: "alpha", "beta", "rc1", "" (leer für stable release)
VERSION_SUFFIX = "alpha"

APP_NAME = "ParaCore"

# Abgeleitete Strings
VERSION = f"{VERSION_MAJOR}.{VERSION_MINOR}.{VERSION_PATCH}"
VERSION_STRING = f"{VERSION}-{VERSION_SUFFIX}" if VERSION_SUFFIX else VERSION
VERSION_FULL = f"v{VERSION_STRING}"

# Format-Version der serialisierten Feature-History.
# Muss erhöht werden wenn sich das Dict-Layout in history_serialization ändert.
HISTORY_FORMAT_VERSION = 1


def get_version_info() -> dict:
    """Gibt alle Versionsinformationen als Dictionary zurück."""
    return {
        "app_name": APP_NAME,
        "version": VERSION,
        "version_string": VERSION_STRING,
        "history_format": HISTORY_FORMAT_VERSION,
    }
