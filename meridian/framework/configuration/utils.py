"""
Utility functions for common settings patterns.
"""

from typing import Union
from pathlib import Path

from .builder import SettingsBuilder
from .models import MeridianSettings


def load_settings_from_file(file_path: Union[str, Path]) -> MeridianSettings:
    """
    Load settings from a single YAML file with environment variable overrides.

    Args:
        file_path: Path to the YAML settings file

    Returns:
        MeridianSettings instance
    """
    return (SettingsBuilder()
            .add_yaml_source(file_path, 100)
            .add_environment_source("MERIDIAN_", 200)
            .build())


def load_default_settings() -> MeridianSettings:
    """
    Load default settings with environment variable support.

    Returns:
        MeridianSettings instance with default settings
    """
    return (SettingsBuilder()
            .add_environment_source("MERIDIAN_", 200)
            .build())
