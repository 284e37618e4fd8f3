"""Runtime settings loaded from the packaged configuration."""

from typing import Any

from pydantic import BaseModel, Field

from defi_positions.data import get_settings_section


class RetrySettings(BaseModel):
    """Backoff knobs for re-running failed valuation batches."""

    max_retries: int = Field(default=2, ge=0)
    base_delay: float = Field(default=0.5, ge=0)
    max_delay: float = Field(default=10.0, ge=0)
    exponential_base: float = Field(default=2.0, ge=1)


class Settings(BaseModel):
    """
    Runtime settings.

    Attributes
    ----------
    timeout : float
        HTTP timeout in seconds for RPC and price requests
    max_batch_size : int
        Maximum number of calls aggregated into one multicall request
    price_ttl : int
        Seconds a fetched price stays cached
    defillama_url : str
        DeFiLlama coins API base URL
    token_image_url : str
        Template for token images, formatted with 'network' and 'address'
    retry : RetrySettings
        Retry policy for failed batches

    """

    timeout: float = Field(default=30.0, gt=0)
    max_batch_size: int = Field(default=500, gt=0)
    price_ttl: int = Field(default=300, ge=0)
    defillama_url: str = "https://coins.llama.fi"
    token_image_url: str = "https://storage.googleapis.com/zapper-fi-assets/tokens/{network}/{address}.png"
    retry: RetrySettings = Field(default_factory=RetrySettings)

    @classmethod
    def load(cls, **overrides: Any) -> "Settings":
        """
        Build settings from networks.yaml with keyword overrides applied on top.

        Parameters
        ----------
        **overrides : Any
            Field values taking precedence over the file

        Returns
        -------
        Settings
            Validated settings

        """
        data = get_settings_section()
        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls.model_validate(data)
