# src/bithab/config.py
import os
from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

TRUE_VALUES = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    supabase_url: str | None = None
    supabase_key: str | None = None
    store_backend: str = "supabase"
    documents_table: str = "user_documents"
    data_dir: str = "./bithab_data"
    persist_ui_cursor: bool = True
    notice_ttl: float = 3.0
    preferences_file: str = "bithab_preferences.json"
    log_level: str = "INFO"
    logs_dir: str = "./logs"
    api_url: str = "http://127.0.0.1:8000"


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


def load_settings() -> Settings:
    """Read settings from the environment (and a .env file, if present)."""
    defaults = Settings()
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        store_backend=os.getenv("BITHAB_STORE_BACKEND", defaults.store_backend).lower(),
        documents_table=os.getenv("BITHAB_DOCUMENTS_TABLE", defaults.documents_table),
        data_dir=os.getenv("BITHAB_DATA_DIR", defaults.data_dir),
        persist_ui_cursor=_env_flag("BITHAB_PERSIST_UI_CURSOR", defaults.persist_ui_cursor),
        notice_ttl=float(os.getenv("BITHAB_NOTICE_TTL", defaults.notice_ttl)),
        preferences_file=os.getenv("BITHAB_PREFERENCES_FILE", defaults.preferences_file),
        log_level=os.getenv("BITHAB_LOG_LEVEL", defaults.log_level),
        logs_dir=os.getenv("BITHAB_LOGS_DIR", defaults.logs_dir),
        api_url=os.getenv("BITHAB_API_URL", defaults.api_url),
    )
