"""Configuration module for realmlink."""

from .settings import (
    AuthSettings,
    ObservabilitySettings,
    RealmsSettings,
    Settings,
    StorageSettings,
    XboxSettings,
    get_settings,
)

__all__ = [
    "AuthSettings",
    "ObservabilitySettings",
    "RealmsSettings",
    "Settings",
    "StorageSettings",
    "XboxSettings",
    "get_settings",
]
