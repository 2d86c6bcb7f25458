# Configuration module for the session engine
from .settings import (
    Settings,
    Environment,
    get_settings,
    clear_settings_cache,
    create_settings_for_environment,
)

__all__ = [
    "Settings",
    "Environment",
    "get_settings",
    "clear_settings_cache",
    "create_settings_for_environment",
]
