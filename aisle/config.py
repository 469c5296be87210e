from __future__ import annotations
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional, List, Literal
from dotenv import load_dotenv
load_dotenv()  # populates os.environ from .env


class Settings(BaseSettings):
    # Completion service (OpenAI-compatible; OpenRouter by default)
    openrouter_api_key: Optional[str] = Field(None, description="Bearer credential for the completion service")
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    recipe_model: str = "meta-llama/llama-3.1-8b-instruct:free"
    recipe_top_p: float = Field(0.5, ge=0, le=1)
    recipe_temperature: float = Field(0.5, ge=0, le=2)
    completion_timeout_seconds: Optional[float] = Field(None, gt=0)

    # Optional OpenRouter attribution headers
    site_url: Optional[str] = None
    site_name: Optional[str] = None

    # Storage
    store_backend: Literal["json", "memory"] = "json"
    data_dir: str = "data"
    inventory_file: str = "data/inventory.json"
    images_dir: str = "data/images"
    public_base_url: str = "http://127.0.0.1:8000"

    # Logging / telemetry
    log_level: str = "INFO"
    telemetry_enabled: bool = False
    otlp_endpoint: str = "http://127.0.0.1:6006/v1/traces"

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["http://127.0.0.1:3000"])

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
