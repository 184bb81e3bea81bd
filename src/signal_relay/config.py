from pydantic_settings import BaseSettings

from signal_relay.prompts import DEFAULT_TRANSLATION_PROMPT


class Settings(BaseSettings):
    model_config = {"env_prefix": "", "env_file": ".env", "env_file_encoding": "utf-8"}

    # Telegram
    telegram_bot_token: str
    source_channel_id: str
    target_channel_id: str

    # LLM (OpenRouter via LiteLLM)
    openrouter_api_key: str = ""
    openrouter_model: str = "openai/gpt-4o-mini"
    llm_temperature: float = 0.1
    llm_max_tokens: int = 2000
    llm_timeout_seconds: float = 60.0
    ai_prompt: str = DEFAULT_TRANSLATION_PROMPT

    # Update delivery
    mode: str = "demo"                               # "demo" (polling) | "prod" (webhook)
    webhook_url: str = ""
    webhook_listen: str = "0.0.0.0"
    port: int = 3000

    # Outbound delivery
    delivery_timeout_seconds: float = 30.0
    delivery_address_fallback: bool = False          # try stripped/int/raw channel ids

    # Database
    database_url: str = "sqlite:///data/relay.db"

    # Logging
    log_json: bool = True
    log_level: str = "info"                          # debug | info | warning | error | critical
