"""
Configuration settings for the Voyage gateway.
Supports environment variables, .env file, and YAML configuration files.
Priority: Environment Variables > config.yml > .env > defaults
"""

import os
from typing import Optional, Literal, List, Dict, Any
from pathlib import Path

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Gateway settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="VOYAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # API Configuration
    api_key: Optional[str] = Field(default=None, description="Voyage AI API key")
    api_base: str = Field(
        default="https://api.voyageai.com/v1",
        description="Base URL of the Voyage AI API",
    )
    timeout: float = Field(default=60.0, description="Request timeout in seconds")
    trust_env: bool = Field(
        default=True,
        description="Trust environment variables for proxy settings (HTTP_PROXY, HTTPS_PROXY)",
    )

    # Model Configuration
    embedding_model: str = Field(default="voyage-3-large", description="Default embedding model")
    rerank_model: str = Field(default="rerank-2", description="Default rerank model")

    # Rate Limiting
    embedding_token_limit: int = Field(
        default=3_000_000,
        ge=1,
        description="Embedding tokens allowed per window",
    )
    rerank_token_limit: int = Field(
        default=2_000_000,
        ge=1,
        description="Rerank tokens allowed per window",
    )
    rate_limit_window: float = Field(
        default=60.0,
        gt=0,
        description="Length of the rate limit window in seconds",
    )
    reserve_estimates: bool = Field(
        default=False,
        description="Reserve estimated tokens when a call is admitted instead of only recording actual usage",
    )

    # Streaming
    stream_buffer_size: int = Field(
        default=16,
        ge=1,
        description="Capacity of the bounded channel behind streaming operations",
    )
    stream_errors: Literal["raise", "log"] = Field(
        default="raise",
        description="'raise' ends a failed stream with the error, 'log' ends it silently",
    )

    # Background work
    blocking_workers: int = Field(
        default=4,
        ge=1,
        description="Threads available to blocking units of work",
    )

    # Retry
    num_retries: int = Field(default=0, ge=0, description="Retries for retryable transport errors")
    retry_delay: float = Field(default=1.0, ge=0.0, description="Delay between retries in seconds")
    retry_on_status_codes: List[int] = Field(
        default=[429, 500, 502, 503, 504],
        description="HTTP status codes to retry on",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    json_logs: bool = Field(default=False, description="Output logs in JSON format")
    log_dir: Optional[str] = Field(default=None, description="Directory to store log files")
    log_max_bytes: int = Field(default=10485760, description="Maximum size of log file in bytes before rotation (default: 10MB)")
    log_backup_count: int = Field(default=5, description="Number of backup log files to keep")

    @field_validator("api_base")
    @classmethod
    def validate_api_base(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_base must start with http:// or https://")
        return v.rstrip("/")

    def has_api_key(self) -> bool:
        return bool(self.api_key)


def load_yaml_config(yaml_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        yaml_path: Path to YAML config file. If None, checks VOYAGE_CONFIG_PATH env var.

    Returns:
        Dictionary with configuration values, empty dict if file not found.
    """
    if yaml_path is None:
        yaml_path = os.environ.get("VOYAGE_CONFIG_PATH", "config.yml")

    config_file = Path(yaml_path)

    if not config_file.exists():
        return {}

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            yaml_config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        print(f"Warning: Failed to load YAML config from {yaml_path}: {e}")
        return {}

    flat_config = {}

    if 'api' in yaml_config:
        api_cfg = yaml_config['api']
        flat_config['api_key'] = api_cfg.get('key')
        flat_config['api_base'] = api_cfg.get('base')
        flat_config['timeout'] = api_cfg.get('timeout')
        flat_config['trust_env'] = api_cfg.get('trust_env')

    if 'models' in yaml_config:
        models_cfg = yaml_config['models']
        flat_config['embedding_model'] = models_cfg.get('embedding')
        flat_config['rerank_model'] = models_cfg.get('rerank')

    if 'rate_limits' in yaml_config:
        rl_cfg = yaml_config['rate_limits']
        flat_config['embedding_token_limit'] = rl_cfg.get('embedding_tokens')
        flat_config['rerank_token_limit'] = rl_cfg.get('rerank_tokens')
        flat_config['rate_limit_window'] = rl_cfg.get('window_seconds')
        flat_config['reserve_estimates'] = rl_cfg.get('reserve_estimates')

    if 'streaming' in yaml_config:
        stream_cfg = yaml_config['streaming']
        flat_config['stream_buffer_size'] = stream_cfg.get('buffer_size')
        flat_config['stream_errors'] = stream_cfg.get('errors')
        flat_config['blocking_workers'] = stream_cfg.get('blocking_workers')

    if 'retry' in yaml_config:
        retry_cfg = yaml_config['retry']
        flat_config['num_retries'] = retry_cfg.get('num_retries')
        flat_config['retry_delay'] = retry_cfg.get('delay')
        flat_config['retry_on_status_codes'] = retry_cfg.get('status_codes')

    if 'logging' in yaml_config:
        log_cfg = yaml_config['logging']
        flat_config['log_level'] = log_cfg.get('level')
        flat_config['json_logs'] = log_cfg.get('json_logs')
        flat_config['log_dir'] = log_cfg.get('log_dir')
        flat_config['log_max_bytes'] = log_cfg.get('max_bytes')
        flat_config['log_backup_count'] = log_cfg.get('backup_count')

    # Remove None values to allow defaults to take effect
    return {k: v for k, v in flat_config.items() if v is not None}


def create_settings() -> Settings:
    """
    Create Settings instance with proper configuration priority:
    1. Environment variables (highest priority)
    2. config.yml
    3. .env file
    4. Default values (lowest priority)
    """
    yaml_config = load_yaml_config()
    settings = Settings(**yaml_config)

    # Init values outrank env vars in pydantic-settings; re-apply env on top of YAML
    env_overrides = Settings(_env_file=None).model_dump(exclude_unset=True)
    if env_overrides:
        settings = settings.model_copy(update=env_overrides)
    return settings


# Global settings instance
settings = create_settings()
