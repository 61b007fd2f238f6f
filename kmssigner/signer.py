"""Signing through a remote KMS key."""

import logging
import math
from collections.abc import Mapping
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

from .client import new_kms_client
from .config import DEFAULT_RETRIEVAL_TIMEOUT, DEFAULT_SIGN_TIMEOUT, SignerConfig
from .deadline import DeadlineExceeded, call_with_deadline
from .metrics import record_error, track_request
from .types import KeyId, MessageType, SigningAlgorithm

logger = logging.getLogger(__name__)

OP_GET_PUBLIC_KEY = "GetPublicKey"
OP_SIGN = "Sign"


class KmsSignerError(Exception):
    """Base class for signer errors.

    Attributes:
        key_id: The KMS key the failed operation targeted
        operation: The KMS operation that failed
    """

    def __init__(self, message: str, *, key_id: str, operation: str) -> None:
        super().__init__(message)
        self.key_id = key_id
        self.operation = operation


class ConstructionError(KmsSignerError):
    """The signer could not be created; the cause is chained."""


class RetrievalError(KmsSignerError):
    """The GetPublicKey call failed (network, permission, not found, deadline)."""


class ParseError(KmsSignerError):
    """KMS returned bytes that are not a DER SubjectPublicKeyInfo public key."""


class SignError(KmsSignerError):
    """The Sign call failed (deadline, permission, key state, algorithm)."""


def _check_timeout(name: str, value: float) -> float:
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"{name} must be positive and finite, got {value}")
    return float(value)


class KmsSigner:
    """Signs digests with an asymmetric KMS key.

    The private key never leaves KMS. The public key is fetched once, when
    the signer is created, and cached for the lifetime of the instance; a
    signer that could not fetch it is never returned.

    The signing algorithm is fixed at construction. ``sign`` accepts the
    ``opts`` algorithm hint and the ``rand`` randomness source of the
    generic ``DigestSigner`` contract but ignores both.

    Instances are safe to share between threads: the only state written
    after construction lives in the per-call deadline of each request. The
    KMS client is shared, not owned; the caller manages its lifetime.
    """

    def __init__(
        self,
        client: Any,
        key_id: str,
        signing_algorithm: SigningAlgorithm | str,
        *,
        retrieval_timeout: float = DEFAULT_RETRIEVAL_TIMEOUT,
        sign_timeout: float = DEFAULT_SIGN_TIMEOUT,
    ) -> None:
        """
        Create a signer and fetch its public key.

        Args:
            client: A boto3 KMS client, or any object with the same
                ``get_public_key`` and ``sign`` methods
            key_id: Key id, key ARN, alias name or alias ARN
            signing_algorithm: The KMS signing algorithm used for every signature
            retrieval_timeout: Deadline in seconds for fetching the public key
            sign_timeout: Deadline in seconds for each sign call

        Raises:
            ValueError: If an argument is invalid (no remote call is made)
            ConstructionError: If the public key cannot be fetched or parsed
        """
        if not key_id or not key_id.strip():
            raise ValueError("key_id must not be empty")

        self._client = client
        self._key_id = KeyId(key_id)
        self._signing_algorithm = SigningAlgorithm.parse(signing_algorithm)
        self._retrieval_timeout = _check_timeout("retrieval_timeout", retrieval_timeout)
        self._sign_timeout = _check_timeout("sign_timeout", sign_timeout)

        try:
            public_key = self._retrieve_public_key()
        except (RetrievalError, ParseError) as e:
            raise ConstructionError(
                f"Failed to retrieve public key for signer: {e}",
                key_id=self._key_id,
                operation=OP_GET_PUBLIC_KEY,
            ) from e

        self._public_key: PublicKeyTypes = public_key
        logger.info(
            f"Created KMS signer for key {self._key_id} "
            f"({self._signing_algorithm.value}, {type(public_key).__name__})"
        )

    def _retrieve_public_key(self) -> PublicKeyTypes:
        """Fetch the public key of the configured KMS key and decode it."""
        try:
            with track_request(OP_GET_PUBLIC_KEY):
                response = call_with_deadline(
                    lambda: self._client.get_public_key(KeyId=self._key_id),
                    self._retrieval_timeout,
                    OP_GET_PUBLIC_KEY,
                )
        except DeadlineExceeded as e:
            record_error(OP_GET_PUBLIC_KEY, "timeout")
            raise RetrievalError(
                f"Timed out getting public key {self._key_id} from KMS: {e}",
                key_id=self._key_id,
                operation=OP_GET_PUBLIC_KEY,
            ) from e
        except Exception as e:
            record_error(OP_GET_PUBLIC_KEY, "remote")
            raise RetrievalError(
                f"Failed to get public key {self._key_id} from KMS: {e}",
                key_id=self._key_id,
                operation=OP_GET_PUBLIC_KEY,
            ) from e

        der = response.get("PublicKey") if isinstance(response, Mapping) else None
        if not isinstance(der, (bytes, bytearray)) or not der:
            record_error(OP_GET_PUBLIC_KEY, "parse")
            raise ParseError(
                f"KMS response for {self._key_id} carries no public key bytes",
                key_id=self._key_id,
                operation=OP_GET_PUBLIC_KEY,
            )

        try:
            return serialization.load_der_public_key(bytes(der))
        except (ValueError, UnsupportedAlgorithm) as e:
            record_error(OP_GET_PUBLIC_KEY, "parse")
            raise ParseError(
                f"Failed to parse public key bytes from KMS as a PKIX public key: {e}",
                key_id=self._key_id,
                operation=OP_GET_PUBLIC_KEY,
            ) from e

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def signing_algorithm(self) -> SigningAlgorithm:
        return self._signing_algorithm

    @property
    def retrieval_timeout(self) -> float:
        return self._retrieval_timeout

    @property
    def sign_timeout(self) -> float:
        return self._sign_timeout

    def public_key(self) -> PublicKeyTypes:
        """Return the cached public key of the KMS key."""
        return self._public_key

    def sign(self, digest: bytes, opts: Any = None, *, rand: Any = None) -> bytes:
        """
        Sign a digest with the KMS key.

        ``digest`` must already be hashed with the algorithm matching the
        configured signing algorithm (see ``SigningAlgorithm.hash_algorithm``);
        KMS is told not to hash it again.

        Args:
            digest: The digest to sign
            opts: Algorithm hint of the generic signer contract, ignored
            rand: Randomness source of the generic signer contract, ignored

        Returns:
            The signature bytes exactly as returned by KMS

        Raises:
            SignError: If the KMS call fails or exceeds ``sign_timeout``
        """
        message = bytes(digest)
        try:
            with track_request(OP_SIGN):
                response = call_with_deadline(
                    lambda: self._client.sign(
                        KeyId=self._key_id,
                        Message=message,
                        MessageType=MessageType.DIGEST.value,
                        SigningAlgorithm=self._signing_algorithm.value,
                    ),
                    self._sign_timeout,
                    OP_SIGN,
                )
        except DeadlineExceeded as e:
            record_error(OP_SIGN, "timeout")
            raise SignError(
                f"Timed out signing digest with KMS key {self._key_id}: {e}",
                key_id=self._key_id,
                operation=OP_SIGN,
            ) from e
        except Exception as e:
            record_error(OP_SIGN, "remote")
            raise SignError(
                f"Failed to sign digest with KMS key {self._key_id}: {e}",
                key_id=self._key_id,
                operation=OP_SIGN,
            ) from e

        signature = response.get("Signature") if isinstance(response, Mapping) else None
        if not isinstance(signature, (bytes, bytearray)):
            record_error(OP_SIGN, "remote")
            raise SignError(
                f"KMS response for {self._key_id} carries no signature",
                key_id=self._key_id,
                operation=OP_SIGN,
            )

        logger.debug(f"Signed {len(message)}-byte digest with KMS key {self._key_id}")
        return signature

    def __repr__(self) -> str:
        return (
            f"KmsSigner(key_id={self._key_id!r}, "
            f"signing_algorithm={self._signing_algorithm.value!r})"
        )


def new_signer(
    config: SignerConfig,
    key_id: str | None = None,
    signing_algorithm: SigningAlgorithm | str | None = None,
    *,
    retrieval_timeout: float | None = None,
    sign_timeout: float | None = None,
) -> KmsSigner:
    """
    Build a KMS client from configuration and create a signer with it.

    Arguments left as None fall back to the values in ``config``.

    Raises:
        ValueError: If no key id is given or configured
        ConstructionError: If the public key cannot be fetched or parsed
    """
    key_id = key_id if key_id is not None else config.key_id
    if key_id is None:
        raise ValueError("key_id must be provided or configured")

    return KmsSigner(
        new_kms_client(config),
        key_id,
        signing_algorithm if signing_algorithm is not None else config.algorithm,
        retrieval_timeout=(
            retrieval_timeout if retrieval_timeout is not None else config.retrieval_timeout
        ),
        sign_timeout=sign_timeout if sign_timeout is not None else config.sign_timeout,
    )
