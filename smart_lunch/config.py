from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional, List, Literal
from dotenv import load_dotenv
load_dotenv()  # populates os.environ from .env


class Settings(BaseSettings):
    # LLM
    openai_api_key: Optional[str] = Field(None, env="OPENAI_API_KEY")
    openai_model_chat: str = Field("gpt-4o-mini", env="OPENAI_MODEL_CHAT")
    openai_model_image: str = Field("dall-e-3", env="OPENAI_MODEL_IMAGE")
    chat_temperature: float = 0.7
    chat_max_tokens: int = 1500
    search_temperature: float = 0.8
    search_max_tokens: int = 2000
    detail_max_tokens: int = 2000
    meal_plan_max_tokens: int = 3000

    # Images
    image_enabled: bool = Field(True, env="IMAGE_ENABLED")
    image_size: str = "1024x1024"
    image_quality: str = "standard"
    image_timeout_seconds: float = Field(30.0, env="IMAGE_TIMEOUT_SECONDS")

    # Storage
    store_backend: Literal["json", "firestore"] = Field("json", env="STORE_BACKEND")
    data_dir: str = Field("data", env="DATA_DIR")
    firebase_credentials_file: Optional[str] = Field(None, env="FIREBASE_CREDENTIALS_FILE")
    firebase_project_id: Optional[str] = Field(None, env="FIREBASE_PROJECT_ID")

    # Identity: "firebase" verifies ID tokens, "header" trusts X-User-Id (local dev)
    auth_mode: Literal["firebase", "header"] = Field("header", env="AUTH_MODE")

    # Meal plan generation is shipped switched off ("coming soon")
    meal_plan_generation_enabled: bool = Field(False, env="MEAL_PLAN_GENERATION_ENABLED")

    # Observability
    log_level: str = Field("INFO", env="LOG_LEVEL")
    metrics_file: str = Field("latency_log.jsonl", env="METRICS_FILE")
    telemetry_enabled: bool = Field(False, env="TELEMETRY_ENABLED")
    telemetry_endpoint: str = Field("http://127.0.0.1:6006/v1/traces", env="TELEMETRY_ENDPOINT")
    phoenix_launch: bool = Field(False, env="PHOENIX_LAUNCH")

    cors_allow_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
