from pathlib import Path
from pydantic_settings import BaseSettings

BASE_DIR = Path(__file__).resolve().parent.parent

class Settings(BaseSettings):
    SQLITE_DB_PATH: str = str(BASE_DIR / "data" / "store.db")
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # assistant endpoints, one per modality
    RAG_TEXT_ENDPOINT: str = "http://localhost:8501/api/query"
    RAG_VOICE_ENDPOINT: str = "http://localhost:8502/api/voice"
    ASSISTANT_HTTP_TIMEOUT: float = 30.0
    CAPTURE_CEILING_SECONDS: float = 15.0
    MIN_AUDIO_BYTES: int = 1000
    CONVERSATION_CONTEXT_TURNS: int = 3

    SIMILARITY_THRESHOLD: float = 0.6
    SIMILARITY_MATCH_COUNT: int = 4

    CHECKOUT_DELAY_SECONDS: float = 2.0

    ACTIVE_SESSION_MINUTES: int = 30
    POPULAR_PRODUCTS_DAYS: int = 7

    SESSION_COOKIE_NAME: str = "cart_session_id"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings() #type: ignore
