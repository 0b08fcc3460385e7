import os

from dotenv import load_dotenv
from pydantic import BaseModel

from .translate import DEFAULT_TRANSLATE_URL


class Settings(BaseModel):
    database_url: str = "sqlite+aiosqlite:///storefront.db"
    backend_key: str = ""
    auth_token: str = "dev-token-please-change"
    my_number: str = "+0000000000"
    host: str = "0.0.0.0"
    port: int = 8087
    storage_signer_url: str = ""
    translate_url: str = DEFAULT_TRANSLATE_URL
    http_timeout: float = 10.0


ENV_NAMES = {
    "database_url": "DATABASE_URL",
    "backend_key": "BACKEND_KEY",
    "auth_token": "AUTH_TOKEN",
    "my_number": "MY_NUMBER",
    "host": "HOST",
    "port": "PORT",
    "storage_signer_url": "STORAGE_SIGNER_URL",
    "translate_url": "TRANSLATE_URL",
    "http_timeout": "HTTP_TIMEOUT",
}


def load_settings(env=None) -> Settings:
    """Read settings from the environment (after loading .env); unset
    variables keep their defaults."""
    if env is None:
        load_dotenv()
        env = os.environ
    values = {field: env[name] for field, name in ENV_NAMES.items() if env.get(name)}
    return Settings(**values)
