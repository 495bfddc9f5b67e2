from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Type
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource
import yaml
import os
from dotenv import dotenv_values


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """
    A simple settings source that loads variables from a YAML file
    at the project's config/config.yaml location (override with CONFIG_FILE).
    """
    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        return None, field_name, False

    def __call__(self) -> Dict[str, Any]:
        # CONFIG_FILE may come from the process environment or from .env
        config_file = (
            os.getenv("CONFIG_FILE")
            or dotenv_values(".env").get("CONFIG_FILE")
            or "config/config.yaml"
        )
        if os.path.exists(config_file):
            with open(config_file) as f:
                return yaml.safe_load(f) or {}
        return {}


class Config(BaseSettings):
    # Environment
    env: str = Field("development", description="Environment: development, staging, production")
    debug: bool = False

    # Provider credentials
    fmp_api_key: Optional[str] = None
    alpha_vantage_api_key: Optional[str] = None
    finnhub_api_key: Optional[str] = None

    # Provider priority per capability, first is primary
    series_providers: List[str] = ["fmp", "alpha_vantage", "finnhub"]
    estimate_providers: List[str] = ["alpha_vantage", "fmp", "finnhub"]
    short_interest_providers: List[str] = ["finnhub"]
    options_flow_providers: List[str] = ["alpha_vantage"]

    # Requests per minute, per provider (shared by all workers)
    rate_limits: Dict[str, int] = {"fmp": 250, "alpha_vantage": 5, "finnhub": 60}
    request_timeout: float = 30.0
    max_retries: int = 3

    # Data acquisition
    lookback_days: int = 250
    min_series_points: int = 15
    benchmark_symbol: str = "SPY"

    # Analysis parameters
    stop_loss_atr_multiple: float = 2.0
    stop_loss_fallback_pct: float = 8.0
    earnings_window_days: int = 2
    full_history_points: int = 50
    freshness_half_life_days: float = 5.0
    freshness_grace_days: float = 3.0
    short_interest_half_life_days: float = 10.0
    options_flow_half_life_days: float = 3.0

    # Batch
    studies: List[str] = ["TTS"]
    symbols: List[str] = []
    analysis_date: Optional[date] = None  # today when unset
    batch_max_workers: int = 4
    symbol_timeout_seconds: float = 60.0
    keep_raw_payloads: bool = True

    # Explanation service: "template", "openai" or "none"
    explainer: str = "template"
    openai_api_key: Optional[str] = None
    openai_api_url: str = "https://api.openai.com/v1/chat/completions"
    openai_model: str = "gpt-4o-mini"

    # Database: "postgres" or "memory"
    store_backend: str = "postgres"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "quantscore"
    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_pool_size: int = 10

    @property
    def postgres_url(self) -> str:
        return f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = "logs/quantscore.log"

    def validate_providers(self) -> Tuple[bool, str]:
        """
        Check that at least one price series provider can be used.

        Returns:
            Tuple of (is_valid, message)
        """
        keys = {
            "fmp": self.fmp_api_key,
            "alpha_vantage": self.alpha_vantage_api_key,
            "finnhub": self.finnhub_api_key,
        }
        usable = [name for name in self.series_providers if keys.get(name)]
        if not usable:
            return False, "No API key set for any price series provider"
        return True, f"Price series providers: {', '.join(usable)}"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


# Singleton instance
config = Config()
