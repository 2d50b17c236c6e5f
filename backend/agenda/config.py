from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # DB
    DB_URL: str = "sqlite:///./agenda.db"

    # Le fasce orarie delle agende sono orari "da muro" in questo fuso
    TIMEZONE: str = "America/Argentina/Buenos_Aires"

    # Turni: tolleranza per crearne uno appena iniziato (es. paziente in sala)
    BOOKING_GRACE_MINUTES: int = 15

    # Calendario
    DAY_VIEW_START_HOUR: int = 8
    DAY_VIEW_END_HOUR: int = 20
    WEEK_INCLUDE_SUNDAY: bool = False
    WEEK_LABEL_MAX_CHARS: int = 18
    MONTH_PREVIEW_LIMIT: int = 3

    # Anagrafica pazienti (Clinic API). Se None, le etichette sono gli id.
    PATIENT_API_URL: str | None = None
    PATIENT_API_TOKEN: str | None = None


settings = Settings()
