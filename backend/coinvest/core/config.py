"""
Configuration Settings for CoinVest

This module loads settings from config.yaml and provides them as a Pydantic settings object.
Environment variables prefixed with COINVEST_ (or a .env file) override the file values.
"""

import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the base directory of the project
BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

# Load environment variables from .env
load_dotenv()


def load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the YAML configuration file

    Args:
        path: Optional path, defaults to config.yaml at the project root

    Returns:
        Dict[str, Any]: Parsed configuration, empty if the file is missing
    """
    config_path = path or os.environ.get("COINVEST_CONFIG", os.path.join(BASE_DIR, "config.yaml"))
    try:
        with open(config_path, "r") as file:
            return yaml.safe_load(file) or {}
    except FileNotFoundError:
        return {}


yaml_config = load_yaml_config()


class Settings(BaseSettings):
    # Server settings
    host: str = yaml_config.get("server", {}).get("host", "127.0.0.1")
    port: int = yaml_config.get("server", {}).get("port", 8000)
    debug: bool = yaml_config.get("server", {}).get("debug", False)

    # API and security
    api_prefix: str = "/api"
    admin_token: str = yaml_config.get("security", {}).get("admin_token", "CHANGE_THIS_ADMIN_TOKEN")
    cors_origins: List[str] = yaml_config.get("server", {}).get(
        "cors_origins", ["http://localhost:4200", "http://localhost:3000"]
    )

    # Database settings
    postgres_host: str = yaml_config.get("database", {}).get("postgres", {}).get("host", "localhost")
    postgres_port: int = yaml_config.get("database", {}).get("postgres", {}).get("port", 5432)
    postgres_user: str = yaml_config.get("database", {}).get("postgres", {}).get("username", "postgres")
    postgres_password: str = yaml_config.get("database", {}).get("postgres", {}).get("password", "postgres")
    postgres_db: str = yaml_config.get("database", {}).get("postgres", {}).get("database", "coinvest_db")
    database_url: Optional[str] = yaml_config.get("database", {}).get("url")

    # Ledger settings
    trade_fee_bps: int = yaml_config.get("ledger", {}).get("fee_bps", 150)
    leaderboard_max_limit: int = yaml_config.get("ledger", {}).get("leaderboard_max_limit", 100)
    default_min_investment: int = yaml_config.get("ledger", {}).get("default_min_investment", 100)

    # Logging settings
    log_level: str = yaml_config.get("logging", {}).get("level", "INFO")
    log_dir: str = os.path.join(BASE_DIR, yaml_config.get("logging", {}).get("dir", "logs"))
    log_to_file: bool = yaml_config.get("logging", {}).get("to_file", True)

    model_config = SettingsConfigDict(env_prefix="COINVEST_", env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def assemble_db_connection(self) -> "Settings":
        if self.database_url:
            return self

        self.database_url = (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )
        return self


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
