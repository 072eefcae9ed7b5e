import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    APP_NAME = os.getenv("APP_NAME", "ExamDesk API")
    ENVIRONMENT = os.getenv("ENVIRONMENT", "development").lower()

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./examdesk.db")
    SQL_ECHO = os.getenv("SQL_ECHO", "False") == "True"

    SECRET_KEY = os.getenv("SECRET_KEY", "change_this_secret_key")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))


settings = Settings()
