from pydantic_settings import BaseSettings
from typing import Optional
from urllib.parse import quote_plus

class Settings(BaseSettings):
    postgres_user: str = ""
    postgres_password: str = ""
    postgres_db: str = ""
    postgres_host: str = "localhost"
    postgres_port: str = "5432"

    # takes precedence over the postgres_* fields when set
    DATABASE_URL: Optional[str] = None

    ENV: str = "local"
    LOG_LEVEL: str = "INFO"

    # organization this terminal belongs to
    ORGANIZATION_ID: int = 1

    # remote order API used by the queue synchronizer
    API_BASE_URL: str = "http://localhost:8000"
    HTTP_TIMEOUT_SECONDS: float = 10.0

    SYNC_MODE: str = "auto"   # auto | manual
    QUEUE_STORAGE: str = "database"   # database | file | memory
    QUEUE_FILE_PATH: str = "data/order_queue.json"

    @property
    def database_url(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL

        if not self.postgres_db:
            return "sqlite:///./restaurant_pos.db"

        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"

settings = Settings()
