"""Configuration settings using Pydantic Settings.

Provides typed configuration with environment variable support.

Usage:
    from worldvars.config import VariableSettings

    # Load from environment variables (WORLDVARS_*)
    settings = VariableSettings()

    # Or override with explicit values
    settings = VariableSettings(data_directory="./saves", campaign_name="aurora")
"""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from worldvars.core.query.operations import validate_table_name
from worldvars.storage.sqlite import file_stem


class VariableSettings(BaseSettings):  # type: ignore[misc]
    """Configuration for the variable scopes.

    Attributes:
        data_directory: Root for durable databases (None keeps everything in memory).
        campaign_name: File name of the global campaign database.
        module_table: Table of the ephemeral module scope.
        player_table: Table of each player scope.
        campaign_table: Table of the global campaign scope.
        local_name_separator: Joins varname and tag when tagged records are
            flattened into untagged local variables.

    Environment Variables:
        WORLDVARS_DATA_DIRECTORY
        WORLDVARS_CAMPAIGN_NAME
        WORLDVARS_MODULE_TABLE
        WORLDVARS_PLAYER_TABLE
        WORLDVARS_CAMPAIGN_TABLE
        WORLDVARS_LOCAL_NAME_SEPARATOR
    """

    model_config = SettingsConfigDict(
        env_prefix="WORLDVARS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    data_directory: str | None = None
    campaign_name: str = "campaign"
    module_table: str = "module_variables"
    player_table: str = "player_variables"
    campaign_table: str = "campaign_variables"
    local_name_separator: str = ":"

    @field_validator("module_table", "player_table", "campaign_table")
    @classmethod
    def _check_table(cls, value: str) -> str:
        return validate_table_name(value)

    @field_validator("local_name_separator")
    @classmethod
    def _check_separator(cls, value: str) -> str:
        if not value:
            raise ValueError("local_name_separator must not be empty")
        return value

    @field_validator("campaign_name")
    @classmethod
    def _check_campaign_name(cls, value: str) -> str:
        if not value or file_stem(value) != value:
            raise ValueError(
                "campaign_name must be a plain file name "
                f"(letters, digits, '_', '-', '.', '~', no leading dot): {value!r}"
            )
        return value
