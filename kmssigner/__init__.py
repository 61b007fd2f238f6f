"""kmssigner - sign digests with AWS KMS keys through a local signer object."""

__version__ = "0.1.0"

from .config import SignerConfig, get_config_from_env, setup_logging
from .deadline import DeadlineExceeded
from .signer import (
    ConstructionError,
    KmsSigner,
    KmsSignerError,
    ParseError,
    RetrievalError,
    SignError,
    new_signer,
)
from .types import DigestSigner, KeyId, MessageType, SigningAlgorithm

__all__ = [
    "ConstructionError",
    "DeadlineExceeded",
    "DigestSigner",
    "KeyId",
    "KmsSigner",
    "KmsSignerError",
    "MessageType",
    "ParseError",
    "RetrievalError",
    "SignError",
    "SignerConfig",
    "SigningAlgorithm",
    "get_config_from_env",
    "new_signer",
    "setup_logging",
]
