"""boto3 KMS client construction."""

import logging
from typing import Any

import boto3
from botocore.config import Config as BotoConfig

from .config import SignerConfig

logger = logging.getLogger(__name__)


def botocore_config(config: SignerConfig) -> BotoConfig:
    """Build the botocore transport settings for a signer configuration.

    Socket timeouts match the longest per-operation deadline so an abandoned
    request is eventually torn down by the transport as well. Retries are
    disabled: every signer operation is a single attempt.
    """
    socket_timeout = max(config.retrieval_timeout, config.sign_timeout)
    return BotoConfig(
        connect_timeout=socket_timeout,
        read_timeout=socket_timeout,
        retries={"total_max_attempts": 1, "mode": "standard"},
    )


def new_kms_client(config: SignerConfig) -> Any:
    """Create a KMS client from configuration.

    Credentials are resolved by boto3's default chain (environment, shared
    config files, instance metadata), optionally scoped to ``profile_name``.
    """
    session = boto3.session.Session(
        profile_name=config.profile_name,
        region_name=config.region,
    )
    client = session.client(
        "kms",
        endpoint_url=config.endpoint_url,
        config=botocore_config(config),
    )
    logger.debug(
        f"Created KMS client (region={client.meta.region_name}, "
        f"endpoint={client.meta.endpoint_url})"
    )
    return client
