from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    APP_NAME: str = "school-attendance"
    SECRET_KEY: str = "a_very_secret_key"
    DATABASE_URL: str = "sqlite:///school_attendance.db"
    SQL_ECHO: bool = False
    LOG_LEVEL: str = "INFO"

    API_PREFIX: str = "/api"
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    AUTH_COOKIE_NAME: str = "access_token"

    # Bulk enrollment spreadsheets carry a title block; student rows start here (1-based).
    BULK_ENROLLMENT_FIRST_ROW: int = 12
    STUDENT_EMAIL_DOMAIN: str = "escuela.com"

    @property
    def cors_origins(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
