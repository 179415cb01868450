from enum import Enum

from pydantic_settings import BaseSettings


class Env(Enum):
    local = "local"
    dev = "dev"
    prod = "prod"


class StoreBackend(Enum):
    database = "database"
    memory = "memory"


class Config(BaseSettings):
    env: Env = Env.local
    store: StoreBackend = StoreBackend.database
    db_url: str = "sqlite+aiosqlite:///lunch.db"
    timezone: str = "Asia/Seoul"
    max_attempts: int = 2
    log_level: str = "INFO"
