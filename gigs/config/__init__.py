"""Configuration module for loading and managing application settings"""
from typing import Dict, Any
import os

from .lib.load_settings_conf import load_settings_conf, validate_settings, SettingsError, DEFAULTS

__all__ = ['settings_conf', 'load_settings_conf', 'validate_settings', 'SettingsError', 'DEFAULTS']

try:
    settings_conf: Dict[str, Any] = load_settings_conf(os.environ.get('GIGS_SETTINGS_PATH', '.'))
except SettingsError as e:
    # Re-raise the error but provide more context
    raise SettingsError(
        f"Configuration Error\n"
        "=================\n\n"
        f"{str(e)}\n\n"
        "Please check settings.conf and any GIGS_* environment variables.\n"
        "See settings.conf.example for the available settings."
    )
