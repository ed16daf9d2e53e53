from __future__ import annotations

import logging
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from injectwire.producers import DEFAULT_PRODUCERS_ENTRY_POINT_GROUP
from injectwire.resources import CloseErrorHandler, discard_close_error, log_close_error


class InjectWireSettings(BaseSettings):
    """Runtime configuration read from ``INJECTWIRE_*`` environment variables.

    Examples:
        .. code-block:: bash

            INJECTWIRE_CLOSE_ERROR_LOG_LEVEL=ERROR pytest
            INJECTWIRE_LOG_CLOSE_ERRORS=false pytest

    """

    model_config = SettingsConfigDict(env_prefix="INJECTWIRE_", frozen=True)

    producers_entry_point_group: str = DEFAULT_PRODUCERS_ENTRY_POINT_GROUP
    """Entry point group scanned by ``ProducerRegistry.discover``."""

    log_close_errors: bool = True
    """Log failures raised by ``close()`` at teardown instead of dropping them."""

    close_error_log_level: int = logging.WARNING
    """Level used for close failures; accepts names such as ``"ERROR"``."""

    @field_validator("close_error_log_level", mode="before")
    @classmethod
    def _parse_log_level(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip().isdigit():
            level = logging.getLevelName(value.strip().upper())
            if not isinstance(level, int):
                msg = f"Unknown log level {value!r}."
                raise ValueError(msg)
            return level
        return value

    def close_error_handler(self) -> CloseErrorHandler:
        """Build the close-error handler these settings describe."""
        if not self.log_close_errors:
            return discard_close_error
        return log_close_error(self.close_error_log_level)
