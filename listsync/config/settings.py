from pydantic_settings import BaseSettings
from dotenv import load_dotenv, find_dotenv
from os import getenv
from typing import Optional

_env_path = find_dotenv(usecwd=True)  # locate a .env file in this folder or parent folders
if _env_path:
    load_dotenv(_env_path)


class Settings(BaseSettings):
    # Remote api
    API_BASE_URL: str = getenv('API_BASE_URL', 'https://your-api-base-url.com')
    API_TOKEN: Optional[str] = getenv('API_TOKEN')
    REQUEST_TIMEOUT: float = float(getenv('REQUEST_TIMEOUT', '15'))
    MAX_RETRIES: int = int(getenv('MAX_RETRIES', '1'))
    RETRY_DELAY: float = float(getenv('RETRY_DELAY', '1.0'))

    # Fetch engine
    PAGE_SIZE: int = int(getenv('PAGE_SIZE', '10'))
    # hard bound for a whole remote fetch (retries included) so a key never stays busy
    FETCH_TIMEOUT: float = float(getenv('FETCH_TIMEOUT', '20'))

    # Cache related
    CACHE_DB_URL: str = getenv('CACHE_DB_URL', 'sqlite:///listsync-cache.db')
    CACHE_LIMIT: int = int(getenv('CACHE_LIMIT', '10'))

    # Connectivity probe
    PROBE_HOST: str = getenv('PROBE_HOST', '1.1.1.1')
    PROBE_PORT: int = int(getenv('PROBE_PORT', '443'))
    PROBE_TIMEOUT: float = float(getenv('PROBE_TIMEOUT', '3'))
    PROBE_INTERVAL: int = int(getenv('PROBE_INTERVAL', '15'))

    LOG_LEVEL: str = getenv('LOG_LEVEL', 'INFO')

settings = Settings()
