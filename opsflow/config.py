from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    PROJECT_NAME: str = "opsflow"

    DEFAULT_TIMEZONE: str = "UTC"

    # Seven days, the longest pause a DELAY node may request
    MAX_DELAY_MS: int = 1000 * 60 * 60 * 24 * 7
    DEFAULT_DELAY_MS: int = 1000
    MAX_LOOP_ITERATIONS: int = 10000
    LOOP_WARNING_ITERATIONS: int = 1000

    # contains / starts_with / ends_with / equals on text
    CASE_SENSITIVE_MATCHING: bool = True

    # Used when a schedule has neither cron nor frequency
    SCHEDULE_FALLBACK_MINUTES: int = 5

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="OPSFLOW_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()


def get_settings() -> Settings:
    return settings
