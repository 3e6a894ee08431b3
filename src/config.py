"""Quote source settings used when valuing held shares."""

import os
from dataclasses import dataclass


@dataclass
class FinnhubConfig:
    """
    Settings for the Finnhub quote source behind position valuation.

    Only the last price and its timestamp are fetched; cache_ttl keeps one
    report run from quoting the same underlying twice.

    Attributes:
        api_key: Finnhub token
        base_url: API root the /quote endpoint hangs off
        timeout: Per-request timeout in seconds
        max_retries: Attempts per quote, including the first
        retry_delay: Backoff before the first retry (seconds), doubled after each
        cache_ttl: Seconds a fetched quote is reused
    """

    api_key: str
    base_url: str = "https://finnhub.io/api/v1"
    timeout: int = 10
    max_retries: int = 3
    retry_delay: float = 1.0
    cache_ttl: int = 300

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("API key cannot be empty")

        if self.timeout <= 0:
            raise ValueError("Timeout must be positive")

        if self.max_retries < 1:
            raise ValueError("Max retries must be at least 1")

        if self.retry_delay <= 0:
            raise ValueError("Retry delay must be positive")

        if self.cache_ttl < 0:
            raise ValueError("Cache TTL cannot be negative")

    @classmethod
    def from_env(cls, api_key_var: str = "FINNHUB_API_KEY") -> "FinnhubConfig":
        """
        Build quote settings from the environment.

        Raises:
            ValueError: If api_key_var is unset, so valuation cannot use live quotes
        """
        api_key = os.getenv(api_key_var)
        if not api_key:
            raise ValueError(
                f"{api_key_var} environment variable not set. "
                f"Get your API key from https://finnhub.io/register"
            )

        return cls(api_key=api_key)
