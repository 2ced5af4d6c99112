from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str | None = None

    # Azure takes precedence when an endpoint is configured
    AZURE_OPENAI_ENDPOINT: str | None = None
    AZURE_OPENAI_API_KEY: str = ""
    AZURE_OPENAI_API_VERSION: str = "2024-10-21"

    SHARKBAIT_MODEL: str = "gpt-4o"
    SHARKBAIT_TEMPERATURE: float = 0.2

    MAX_ITERATIONS: int = 50
    MAX_CONTEXT_TOKENS: int = 128_000
    RESERVED_FOR_RESPONSE: int = 16_000
    COMPACTION_THRESHOLD: float = 0.85

    WORKING_DIR: Path = Path.cwd()
    ENABLE_SAFETY_HOOKS: bool = True
    LOG_LEVEL: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
