import logging

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "postgresql+asyncpg://localhost:5432/goalday"
    api_key: str | None = None
    log_level: str = "INFO"

    # Day boundaries are computed in a single fixed offset (IST by default), not per user.
    day_offset_minutes: int = 330

    # Substitutions applied during aggregation when a task omits the field
    default_task_minutes: float = 25.0
    default_mindful_rating: int = 3
    mindful_rating_threshold: int = 4  # rating >= this counts as a mindful task

    default_target_hours: float = 8.0

    # A day qualifies for the streak when total minutes are strictly above this
    streak_min_minutes: float = 0.0

    history_max_limit: int = 100
    create_tables: bool = False

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
