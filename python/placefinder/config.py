"""Application settings loaded from environment."""
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    places_base_url: str = Field("http://localhost:3001", validation_alias="PLACES_BASE_URL")
    search_timeout_s: float = Field(8.0, validation_alias="SEARCH_TIMEOUT_S")
    search_max_attempts: int = Field(2, validation_alias="SEARCH_MAX_ATTEMPTS")
    search_budget_s: float = Field(9.0, validation_alias="SEARCH_BUDGET_S")

    ollama_base_url: str = Field("http://localhost:11434", validation_alias="OLLAMA_URL")
    ollama_model: str = Field("llama3.2", validation_alias="OLLAMA_MODEL")
    llm_timeout_s: float = Field(30.0, validation_alias="LLM_TIMEOUT_S")

    default_lat: Optional[float] = Field(None, validation_alias="DEFAULT_LAT")
    default_lng: Optional[float] = Field(None, validation_alias="DEFAULT_LNG")
    default_address: Optional[str] = Field(None, validation_alias="DEFAULT_ADDRESS")

    max_sessions: int = Field(500, validation_alias="MAX_SESSIONS")

    cors_origins: list[str] = Field(default_factory=lambda: ["*"], validation_alias="CORS_ORIGINS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
        "extra": "ignore",
    }

settings = Settings()
