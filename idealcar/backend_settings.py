from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "IdealCar Backend API"
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    ADMIN_PASSWORD: str = "admin123"  # change later
    ADMIN_TOKEN_TTL_SECONDS: int = 24 * 60 * 60
    # Comma separated list of origins the browser clients are served from.
    ALLOWED_ORIGINS: str = (
        "http://localhost:3000,http://127.0.0.1:3000,"
        "http://localhost:5500,http://127.0.0.1:5500"
    )
    # "json" keeps one file per collection in DATA_DIR, "sqlite" keeps the
    # collections in DATABASE_URL instead.
    STORE_BACKEND: str = "json"
    DATA_DIR: str = (BASE_DIR / "data").as_posix()
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'idealcar.db'}"
    UPLOAD_DIR: str = (BASE_DIR / "uploads").as_posix()
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    MAX_VEHICLE_IMAGES: int = 10
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_MAX_REQUESTS: int = 100
    LOGIN_RATE_LIMIT_MAX: int = 10
    # Only enable when every request arrives through a proxy that sets
    # X-Forwarded-For itself; otherwise clients pick their own address.
    TRUST_FORWARDED_FOR: bool = False
    LOG_LEVEL: str = "INFO"
    PUBLIC_SITE_URL: str = "http://localhost:5500"

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() in ("development", "dev", "local")

settings = Settings()
