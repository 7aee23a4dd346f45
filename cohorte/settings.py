# cohorte/settings.py
import logging
import os
import sys

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    # core
    APP_NAME: str = Field(default="Cohorte")
    ENV: str = Field(default=os.getenv("APP_ENV", "dev"))
    DEBUG: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")

    # model backends
    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = Field(default="gpt-4o-mini")
    USE_OLLAMA: bool = Field(default=False)
    OLLAMA_HOST: str = Field(default="http://localhost:11434")
    OLLAMA_MODEL: str = Field(default="mistral:7b-instruct")

    # comment threads; empty -> in-memory store
    COMMENT_DB_PATH: str = Field(default="")

    # analysis limits
    MAX_PERSONAS: int = Field(default=10)
    MAX_TEXT_CHARS: int = Field(default=8000)

    model_config = SettingsConfigDict(
        env_file=".env.dev",
        extra="ignore",
    )

    @property
    def app_name(self) -> str:
        return self.APP_NAME


def setup_logging(level: str = "INFO") -> None:
    """Attach one stdout handler to the root logger (idempotent)."""
    root = logging.getLogger()
    if not any(getattr(h, "_cohorte", False) for h in root.handlers):
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(LOG_FORMAT))
        h._cohorte = True
        root.addHandler(h)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


settings = Settings()
