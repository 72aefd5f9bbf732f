"""
Application configuration loaded from environment variables / .env file.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Broadcast channel
    bind_host: str = "0.0.0.0"
    receive_hold_tag: str = "playground_sync"
    transmit_hold_tag: str = "playground_broadcast"
    send_timeout: float = 5.0
    drain_timeout: float = 2.0
    debug: bool = False

    # API server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_token: str = ""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
