from __future__ import annotations

import logging
import os
import string
from functools import lru_cache
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_ORIGIN = "http://localhost:5173"


class Settings(BaseSettings):
    session_code_length: int = Field(default=4, alias="SESSION_CODE_LENGTH", ge=1)
    session_code_alphabet: str = Field(
        default=string.digits + string.ascii_uppercase + string.ascii_lowercase,
        alias="SESSION_CODE_ALPHABET",
        min_length=2,
    )
    session_queue_size: int = Field(default=64, alias="SESSION_QUEUE_SIZE", ge=1)
    session_call_timeout: float = Field(default=5.0, alias="SESSION_CALL_TIMEOUT", gt=0)
    origin: str = Field(default="", alias="ORIGIN")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", populate_by_name=True)

    def allowed_origins(self) -> List[str]:
        """
        Always allows the local dev server, plus ORIGIN split on commas.
        Example: "https://briskula.example, https://www.briskula.example"
        """
        return [DEFAULT_ORIGIN] + [x.strip() for x in self.origin.split(",") if x.strip()]

    def log_status(self) -> None:
        env_name = os.getenv("ENV", "unknown")
        logger.info(
            "Session settings: code_length=%s, queue_size=%s, call_timeout=%ss, env=%s",
            self.session_code_length,
            self.session_queue_size,
            self.session_call_timeout,
            env_name,
        )


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()
    settings.log_status()
    return settings


settings = get_settings()
