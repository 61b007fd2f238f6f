"""Configuration management using msgspec Struct.

Embedding applications typically call ``get_config_from_env`` and then
``setup_logging(config.normalized_log_level)`` before ``new_signer(config)``.
"""

import logging
import math
import os

import msgspec

from .types import SigningAlgorithm

DEFAULT_RETRIEVAL_TIMEOUT = 10.0
DEFAULT_SIGN_TIMEOUT = 10.0

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class SignerConfig(msgspec.Struct, frozen=True):
    """Signer configuration using msgspec Struct."""

    # Key selection
    key_id: str | None = None
    signing_algorithm: str = SigningAlgorithm.ECDSA_SHA_256.value

    # AWS client settings (None falls back to the boto3 resolution chain)
    region: str | None = None
    endpoint_url: str | None = None
    profile_name: str | None = None

    # Per-operation timeouts in seconds
    retrieval_timeout: float = DEFAULT_RETRIEVAL_TIMEOUT
    sign_timeout: float = DEFAULT_SIGN_TIMEOUT

    # Logging
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.key_id is not None and not self.key_id.strip():
            raise ValueError("key_id must not be empty")

        # Raises ValueError listing the accepted values
        SigningAlgorithm.parse(self.signing_algorithm)

        for name, value in (
            ("retrieval_timeout", self.retrieval_timeout),
            ("sign_timeout", self.sign_timeout),
        ):
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be positive and finite, got {value}")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {VALID_LOG_LEVELS}, got {self.log_level}"
            )

    @property
    def algorithm(self) -> SigningAlgorithm:
        """Return the configured signing algorithm as an enum member."""
        return SigningAlgorithm.parse(self.signing_algorithm)

    @property
    def normalized_log_level(self) -> str:
        """Return normalized uppercase log level."""
        return self.log_level.upper()


def get_config_from_env() -> SignerConfig:
    """Load configuration from ``KMSSIGNER_*`` environment variables.

    Empty optional variables are treated as unset.
    """
    config_dict: dict[str, object] = {
        "key_id": os.getenv("KMSSIGNER_KEY_ID") or None,
        "signing_algorithm": os.getenv(
            "KMSSIGNER_SIGNING_ALGORITHM", SigningAlgorithm.ECDSA_SHA_256.value
        ),
        "region": os.getenv("KMSSIGNER_REGION") or None,
        "endpoint_url": os.getenv("KMSSIGNER_ENDPOINT_URL") or None,
        "profile_name": os.getenv("KMSSIGNER_PROFILE") or None,
        "retrieval_timeout": os.getenv(
            "KMSSIGNER_RETRIEVAL_TIMEOUT", str(DEFAULT_RETRIEVAL_TIMEOUT)
        ),
        "sign_timeout": os.getenv("KMSSIGNER_SIGN_TIMEOUT", str(DEFAULT_SIGN_TIMEOUT)),
        "log_level": os.getenv("KMSSIGNER_LOG_LEVEL", "INFO"),
    }

    try:
        config = msgspec.convert(config_dict, SignerConfig, strict=False)
    except msgspec.ValidationError as e:
        raise ValueError(f"Configuration validation error: {e}")

    return config


def setup_logging(log_level: str) -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
