import uuid

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    log_level: str = "INFO"
    sql_echo: bool = False
    # Создавать таблицы при старте (для разработки, в проде - alembic)
    auto_create_schema: bool = False

    # Документы-схемы ссылаются на этот идентификатор вместо реальной схемы
    meta_schema_id: uuid.UUID = uuid.UUID("00000000-0000-0000-0000-000000000000")

    model_config = {"env_file": ".env", "extra": "ignore"}

settings = Settings()
