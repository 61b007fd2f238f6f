"""Type definitions for kmssigner.

This module contains the signing algorithm enumerator, domain-specific
type aliases and the capability protocol implemented by ``KmsSigner``.
"""

from enum import Enum
from typing import Any, NewType, Protocol, runtime_checkable

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.types import PublicKeyTypes

KeyId = NewType("KeyId", str)
"""KMS key identifier: key id, key ARN, alias name or alias ARN."""


class MessageType(str, Enum):
    """How KMS should interpret the ``Message`` field of a sign request."""

    RAW = "RAW"
    DIGEST = "DIGEST"


class SigningAlgorithm(str, Enum):
    """KMS ``SigningAlgorithmSpec`` values usable with pre-hashed digests.

    ``ED25519_SHA_512`` and the ML-DSA specs are absent: KMS does not accept
    ``MessageType=DIGEST`` for them.
    """

    RSASSA_PSS_SHA_256 = "RSASSA_PSS_SHA_256"
    RSASSA_PSS_SHA_384 = "RSASSA_PSS_SHA_384"
    RSASSA_PSS_SHA_512 = "RSASSA_PSS_SHA_512"
    RSASSA_PKCS1_V1_5_SHA_256 = "RSASSA_PKCS1_V1_5_SHA_256"
    RSASSA_PKCS1_V1_5_SHA_384 = "RSASSA_PKCS1_V1_5_SHA_384"
    RSASSA_PKCS1_V1_5_SHA_512 = "RSASSA_PKCS1_V1_5_SHA_512"
    ECDSA_SHA_256 = "ECDSA_SHA_256"
    ECDSA_SHA_384 = "ECDSA_SHA_384"
    ECDSA_SHA_512 = "ECDSA_SHA_512"
    SM2DSA = "SM2DSA"
    ED25519_PH_SHA_512 = "ED25519_PH_SHA_512"

    @classmethod
    def parse(cls, value: "SigningAlgorithm | str") -> "SigningAlgorithm":
        """Return the member for ``value``, accepting members or their names.

        Raises:
            ValueError: If ``value`` is not a known signing algorithm
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            valid = ", ".join(member.value for member in cls)
            raise ValueError(
                f"Unknown signing algorithm: {value!r} (expected one of {valid})"
            ) from None

    def hash_algorithm(self) -> hashes.HashAlgorithm:
        """Return the hash a caller must apply before calling ``sign``."""
        if self is SigningAlgorithm.SM2DSA:
            return hashes.SM3()
        return _HASHES[self.value.rsplit("_", 1)[-1]]()

    @property
    def digest_size(self) -> int:
        """Size in bytes of the digest KMS expects for this algorithm."""
        return self.hash_algorithm().digest_size


_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "256": hashes.SHA256,
    "384": hashes.SHA384,
    "512": hashes.SHA512,
}


@runtime_checkable
class DigestSigner(Protocol):
    """Capability shape of an asymmetric signer that signs digests.

    Any object exposing a public key and a ``sign`` method with this
    signature can be used wherever a ``DigestSigner`` is expected.

    The signing algorithm is fixed when the implementation is constructed.
    The per-call ``opts`` argument (an algorithm hint in the generic
    contract) and the ``rand`` randomness source are accepted but ignored.
    """

    def public_key(self) -> PublicKeyTypes: ...

    def sign(self, digest: bytes, opts: Any = None, *, rand: Any = None) -> bytes: ...
