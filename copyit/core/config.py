from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: Optional[str] = None
    jwt_secret: Optional[str] = None
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    allow_sign_up: bool = True
    bcrypt_rounds: int = 12

    log_level: str = "INFO"
    sql_echo: bool = False
    cors_origins: List[str] = ["*"]

    demo_cookie_name: str = "copyit_demo"
    demo_max_visitors: int = 1000

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def is_configured(self) -> bool:
        """Бэкенд доступен только при наличии URL базы и секрета для токенов"""
        return bool(self.database_url and self.jwt_secret)


settings = Settings()
