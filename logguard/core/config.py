from pydantic_settings import BaseSettings
import logging
import os
from dotenv import load_dotenv
from pathlib import Path
from typing import List


env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./logguard.db")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173"]
    HTTP_TIMEOUT: float = float(os.getenv("HTTP_TIMEOUT", "30"))

    # Seed values for the persisted application config
    GRAYLOG_URL: str = os.getenv("GRAYLOG_URL", "http://localhost:9000")
    GRAYLOG_USERNAME: str = os.getenv("GRAYLOG_USERNAME", "admin")
    GRAYLOG_PASSWORD: str = os.getenv("GRAYLOG_PASSWORD", "")
    GRAYLOG_API_TOKEN: str = os.getenv("GRAYLOG_API_TOKEN", "")
    OPENWEBUI_URL: str = os.getenv("OPENWEBUI_URL", "http://localhost:3000")
    OPENWEBUI_API_KEY: str = os.getenv("OPENWEBUI_API_KEY", "")
    OPENWEBUI_MODEL: str = os.getenv("OPENWEBUI_MODEL", "llama3.1")
    LLM_LANGUAGE: str = os.getenv("LLM_LANGUAGE", "english")


settings = Settings()


LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, datefmt=LOG_DATEFMT)
