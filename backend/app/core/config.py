from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Gemini Chat"
    debug: bool = False

    # Database
    database_url: str = f"sqlite:///{Path(__file__).resolve().parent.parent.parent / 'chat.db'}"

    # LLM
    llm_provider: str = "gemini"  # gemini
    gemini_api_key: str = ""
    gemini_fast_model: str = "gemini-2.0-flash"
    gemini_quality_model: str = "gemini-2.5-pro"

    # Images
    unsplash_access_key: str = ""
    unsplash_api_url: str = "https://api.unsplash.com"
    placeholder_api_url: str = "https://picsum.photos"

    # Auth (tokens are issued by the identity provider, we only verify them)
    auth_jwt_secret: str = ""
    auth_jwt_audience: str = "authenticated"
    auth_jwt_algorithms: list[str] = ["HS256"]

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "CHAT_",
    }


settings = Settings()
