"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "lulu-companion"
    debug: bool = False
    log_level: str = "INFO"

    # Alert window monitoring
    monitor_enabled: bool = True
    poll_interval_seconds: float = 0.5
    target_bundle_id: str = "com.objective-see.lulu.app"
    target_app_name: str = "LuLu"
    alert_title_marker: str = "LuLu Alert"
    max_tree_depth: int = 32
    max_tree_nodes: int = 2000
    event_queue_size: int = 16

    # Enrichment
    lookup_timeout_seconds: float = 10.0
    whois_command: str = "whois"
    dig_command: str = "dig"
    geo_lookup_url: str = "http://ip-api.com/json/{ip}?fields=status,message,country,city,isp,org"

    # Classification transport
    request_timeout_seconds: float = 30.0
    max_tokens: int = 1024
    anthropic_model: str = "claude-sonnet-4-20250514"
    anthropic_base_url: str = "https://api.anthropic.com/v1/messages"
    anthropic_version: str = "2023-06-01"
    threemate_base_url: str = "https://api.3mate.io/v1/messages"
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1/chat/completions"
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    prompt_include_raw_fragments: bool = True

    # Credentials
    credential_env_vars: list[str] = ["ANTHROPIC_API_KEY", "LULU_API_KEY"]
    credential_store_path: str = "~/.lulu-companion/credentials.json"
    max_credential_slots: int = 5

    # Presentation
    history_size: int = 50

    model_config = {"env_prefix": "LULU_"}


settings = Settings()
