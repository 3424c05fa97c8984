"""Configuration system for Tributo Agents.

This module provides Pydantic Settings-based configuration with environment
variable support and sensible defaults for the comparison agent.

Usage:
    from tributo_agents.config import TributoConfig

    # Load from environment variables and .env file
    config = TributoConfig()

    # Access LLM settings
    print(config.llm.model)
    print(config.llm.timeout)

    # Access retry settings
    print(config.resilience.max_attempts)
"""

import os
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tributo_core.generation import DEFAULT_MAX_TOKENS, DEFAULT_MODEL, DEFAULT_TIMEOUT
from tributo_core.models import TaxRates
from tributo_core.prompts import PromptVariant


class LLMConfig(BaseSettings):
    """LLM configuration settings.

    Configuration for the language model that writes the comparison.
    Supports environment variables with the prefix TRIBUTO_LLM_.

    Environment Variables:
        TRIBUTO_LLM_MODEL: Model name
        TRIBUTO_LLM_TEMPERATURE: Sampling temperature (0.0-1.0)
        TRIBUTO_LLM_MAX_TOKENS: Maximum output tokens
        TRIBUTO_LLM_API_KEY: API key (falls back to ANTHROPIC_API_KEY)
        TRIBUTO_LLM_TIMEOUT: Per-attempt timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="TRIBUTO_LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    model: str = Field(
        default=DEFAULT_MODEL,
        description="Model identifier for the LLM",
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Sampling temperature for generation",
    )
    max_tokens: int = Field(
        default=DEFAULT_MAX_TOKENS,
        gt=0,
        le=64000,
        description="Maximum tokens in response",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="Anthropic API key",
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Hard timeout of one generation attempt in seconds",
    )

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Ensure model name is not empty."""
        if not v or not v.strip():
            raise ValueError("Model name cannot be empty")
        return v.strip()

    @property
    def resolved_api_key(self) -> Optional[str]:
        """The configured key, or ANTHROPIC_API_KEY from the environment."""
        return self.api_key or os.getenv("ANTHROPIC_API_KEY") or None


class ResilienceConfig(BaseSettings):
    """Retry and validation settings of the comparison agent.

    Environment Variables:
        TRIBUTO_RETRY_MAX_ATTEMPTS: Generation attempts before falling back
        TRIBUTO_RETRY_RETRY_DELAY: Constant delay between attempts in seconds
        TRIBUTO_RETRY_MIN_UNIQUE_ACTIONS: Distinct roadmap actions required
        TRIBUTO_RETRY_ARITHMETIC_TOLERANCE: Accepted relative drift of totals
        TRIBUTO_RETRY_PROMPT_VARIANT: Initial prompt variant
        TRIBUTO_RETRY_SWITCH_TO_TAGGED_ON_PARSE_ERROR: Retry a JSON variant
            that failed to parse with its tagged counterpart
    """

    model_config = SettingsConfigDict(
        env_prefix="TRIBUTO_RETRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum generation attempts before the deterministic fallback",
    )
    retry_delay: float = Field(
        default=0.75,
        ge=0,
        description="Delay between attempts in seconds",
    )
    min_unique_actions: int = Field(
        default=13,
        ge=1,
        le=15,
        description="Minimum distinct roadmap action labels out of 15",
    )
    arithmetic_tolerance: Optional[float] = Field(
        default=0.05,
        ge=0,
        description="Relative tolerance of generated totals; None disables the check",
    )
    prompt_variant: PromptVariant = Field(
        default=PromptVariant.STANDARD,
        description="Prompt variant of the first attempt",
    )
    switch_to_tagged_on_parse_error: bool = Field(
        default=True,
        description="Use the tagged counterpart after a JSON parse failure",
    )


class TaxRateConfig(BaseSettings):
    """Rate table settings.

    Environment Variables:
        TRIBUTO_RATES_CREDIT_RATE: Combined IBS/CBS rate (fraction)
        TRIBUTO_RATES_DEFAULT_DECLARED_RATE: Simples rate (percent) when none declared
        TRIBUTO_RATES_IBS_SHARE: IBS share of the reform total (fraction)
    """

    model_config = SettingsConfigDict(
        env_prefix="TRIBUTO_RATES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    credit_rate: Decimal = Field(default=Decimal("0.265"), gt=0, lt=1)
    default_declared_rate: Decimal = Field(default=Decimal("10.81"), gt=0, le=100)
    ibs_share: Decimal = Field(default=Decimal("0.65"), ge=0, le=1)

    def to_tax_rates(self) -> TaxRates:
        """Build the rate table used by the core package."""
        return TaxRates(
            credit_rate=self.credit_rate,
            default_declared_rate=self.default_declared_rate,
            ibs_share=self.ibs_share,
        )


class TributoConfig(BaseSettings):
    """Root configuration for Tributo Agents.

    Environment Variables:
        TRIBUTO_ENV: Environment name (development, staging, production, test)
        TRIBUTO_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)

    Example:
        # Override specific settings
        config = TributoConfig(
            llm=LLMConfig(timeout=8.0),
            resilience=ResilienceConfig(prompt_variant=PromptVariant.EXPERT),
        )
    """

    model_config = SettingsConfigDict(
        env_prefix="TRIBUTO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment settings
    env: str = Field(
        default="development",
        description="Environment name (development, staging, production, test)",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )

    # Nested configuration
    llm: LLMConfig = Field(default_factory=LLMConfig)
    resilience: ResilienceConfig = Field(default_factory=ResilienceConfig)
    rates: TaxRateConfig = Field(default_factory=TaxRateConfig)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.env == "development"
