"""
config.py
---------
Runtime settings for the optional natural-language understanding call.

Deal-model defaults are not configured here: they live on the
`LBOAssumptions` dataclass and are surfaced through the field catalog.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_NLU_MODEL = "claude-3-7-sonnet-20250219"
DEFAULT_NLU_MAX_TOKENS = 4096
DEFAULT_NLU_TIMEOUT = 60.0


class NLUSettings(BaseSettings):
    """
    Reads ANTHROPIC_API_KEY, DEALFORGE_NLU_MODEL, DEALFORGE_NLU_MAX_TOKENS
    and DEALFORGE_NLU_TIMEOUT from the environment.
    """

    api_key: str | None = Field(None, validation_alias="ANTHROPIC_API_KEY")
    model: str = DEFAULT_NLU_MODEL
    max_tokens: int = DEFAULT_NLU_MAX_TOKENS
    timeout_seconds: float = Field(DEFAULT_NLU_TIMEOUT, validation_alias="DEALFORGE_NLU_TIMEOUT")

    model_config = SettingsConfigDict(
        env_prefix="DEALFORGE_NLU_",
        populate_by_name=True,
        extra="ignore",
        frozen=True,
    )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls) -> "NLUSettings":
        return cls()
