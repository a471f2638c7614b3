from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SERVER_NAME: str = 'adminserver'
    SERVER_ADDRESS: str = ':8080'
    SHUTDOWN_TIMEOUT_S: float = Field(default=10.0, ge=0)
    DEBUG: bool = False
    LOG_LEVEL: str = 'info'
    LOG_FORMAT: Optional[str] = None

    class Config:
        env_file = '.env'

    @field_validator('SERVER_NAME', 'SERVER_ADDRESS', 'LOG_LEVEL', mode='before')
    def strip_value(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('LOG_FORMAT', mode='before')
    def allow_blank_format(cls, v):
        if v == '' or v is None:
            return None
        return v


settings = Settings()
