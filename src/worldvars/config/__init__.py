"""Configuration module using Pydantic Settings.

Usage:
    from worldvars.config import VariableSettings

    settings = VariableSettings(data_directory="./saves")
"""

from worldvars.config.settings import VariableSettings

__all__ = [
    "VariableSettings",
]
