"""Nested-set engine settings."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .yaml_sources import create_nested_set_yaml_source


class NestedSetSettings(BaseSettings):
    """Behaviour switches for tree mutations.

    Environment variables use NESTED_SET_ prefix.
    Example: NESTED_SET_VERIFY_INTEGRITY=true
    """

    verify_integrity: bool = Field(
        default=False,
        description=(
            "Re-check every touched tree after a mutation and roll the mutation back "
            "when the stored coordinates no longer form a valid nested set."
        ),
    )
    lock_rows: bool = Field(
        default=False,
        description="Reload the moving and target rows with SELECT ... FOR UPDATE.",
    )

    model_config = SettingsConfigDict(
        env_prefix="NESTED_SET_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        frozen=True,
        extra="ignore",
        env_ignore_empty=True,
    )

    @classmethod
    def settings_customise_sources(
        cls, settings_cls, init_settings, env_settings, dotenv_settings, file_secret_settings
    ):
        """Customize settings source precedence: init > yaml > env > dotenv > secrets."""
        return (
            init_settings,
            create_nested_set_yaml_source(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )
