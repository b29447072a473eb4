from functools import lru_cache
import os
from pydantic import BaseModel, Field
from .core.constants import DEFAULT_CHARGE_DUE_DAYS, DEFAULT_SLOT_MINUTES


class Settings(BaseModel):
    env: str = Field(default="dev", alias="ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(default="", alias="DATABASE_URL")
    postgres_db: str = Field(default="courtside", alias="POSTGRES_DB")
    postgres_user: str = Field(default="courtside", alias="POSTGRES_USER")
    postgres_password: str = Field(default="courtside", alias="POSTGRES_PASSWORD")
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")

    jwt_secret: str = Field(default="secret", alias="JWT_SECRET")
    jwt_expire_min: int = Field(default=43200, alias="JWT_EXPIRE_MIN")

    payment_provider: str = Field(default="stub", alias="PAYMENT_PROVIDER")
    payment_return_url: str = Field(default="http://localhost", alias="PAYMENT_RETURN_URL")
    payment_currency: str = Field(default="BRL", alias="PAYMENT_CURRENCY")
    charge_due_days: int = Field(default=DEFAULT_CHARGE_DUE_DAYS, alias="CHARGE_DUE_DAYS")

    slot_size_minutes: int = Field(default=DEFAULT_SLOT_MINUTES, alias="SLOT_SIZE_MINUTES")

    notification_webhook_url: str = Field(default="", alias="NOTIFICATION_WEBHOOK_URL")
    notification_timeout: float = Field(default=10.0, alias="NOTIFICATION_TIMEOUT")

    class Config:
        populate_by_name = True

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg2://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings(**os.environ)
