"""
Log codes for configuration-related operations.
"""

CONFIG = "config"

# Transmission settings
SETTINGS = f"{CONFIG}.settings"
SETTINGS_RESOLVED = f"{SETTINGS}.resolved"
SETTINGS_FROM_ENV = f"{SETTINGS}.from_env"
SETTINGS_ENV_INVALID = f"{SETTINGS}.env_invalid"
