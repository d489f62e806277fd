"""Application configuration via environment variables."""
import logging

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Noder"
    debug: bool = True
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    history_limit: int = 50
    default_trigger: str = "manual"
    log_level: str = "INFO"

    model_config = {"env_prefix": "NODER_"}


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
