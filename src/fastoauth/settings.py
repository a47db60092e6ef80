from __future__ import annotations as _annotations

import inspect
from typing import Annotated, Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

LOG_LEVEL = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """FastOAuth settings."""

    model_config = SettingsConfigDict(
        env_prefix="FASTOAUTH_",
        env_file=".env",
        extra="ignore",
        env_nested_delimiter="__",
    )

    log_level: LOG_LEVEL = "INFO"
    enable_rich_tracebacks: Annotated[
        bool,
        Field(
            description=inspect.cleandoc(
                """
                If True, will use rich tracebacks for logging.
                """
            )
        ),
    ] = True

    mask_error_details: Annotated[
        bool,
        Field(
            default=True,
            description=inspect.cleandoc(
                """
                If True, unexpected exceptions raised while handling an OAuth
                request are reported to clients as a generic
                "Internal Server Error". If False, the exception message is
                used as the error_description of the server_error response.
                Protocol errors are always reported with their own message.
                """
            ),
        ),
    ] = True

    @model_validator(mode="after")
    def setup_logging(self) -> Self:
        """Finalize the settings."""
        from fastoauth.utilities.logging import configure_logging

        configure_logging(
            self.log_level, enable_rich_tracebacks=self.enable_rich_tracebacks
        )

        return self
