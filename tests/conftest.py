"""Test fixtures and utilities."""

import threading
from collections.abc import Callable, Generator
from typing import Any

import boto3
import pytest
from botocore.stub import Stubber
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed

from kmssigner.config import SignerConfig


def public_der(private_key: Any) -> bytes:
    """Encode the public half of a key as DER SubjectPublicKeyInfo."""
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


class FakeKmsClient:
    """In-process stand-in for a boto3 KMS client.

    Records every request and optionally stalls before answering so that
    deadline handling can be exercised without a network.
    """

    def __init__(
        self,
        public_key_der: bytes,
        sign_fn: Callable[[dict[str, Any]], bytes] | None = None,
        get_public_key_delay: float = 0.0,
        sign_delay: float = 0.0,
    ) -> None:
        self.public_key_der = public_key_der
        self.sign_fn = sign_fn or (lambda request: b"\xde\xad\xbe\xef")
        self.get_public_key_delay = get_public_key_delay
        self.sign_delay = sign_delay
        self.get_public_key_calls: list[dict[str, Any]] = []
        self.sign_calls: list[dict[str, Any]] = []
        # Set at teardown so stalled worker threads finish promptly
        self.release = threading.Event()

    def get_public_key(self, **kwargs: Any) -> dict[str, Any]:
        self.get_public_key_calls.append(kwargs)
        if self.get_public_key_delay:
            self.release.wait(self.get_public_key_delay)
        return {"KeyId": kwargs["KeyId"], "PublicKey": self.public_key_der}

    def sign(self, **kwargs: Any) -> dict[str, Any]:
        self.sign_calls.append(kwargs)
        if self.sign_delay:
            self.release.wait(self.sign_delay)
        return {
            "KeyId": kwargs["KeyId"],
            "Signature": self.sign_fn(kwargs),
            "SigningAlgorithm": kwargs["SigningAlgorithm"],
        }


@pytest.fixture(scope="session")
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    """Create a P-256 key standing in for the key held by KMS."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def ec_public_der(ec_private_key: ec.EllipticCurvePrivateKey) -> bytes:
    """Return the DER SPKI encoding of the P-256 public key."""
    return public_der(ec_private_key)


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    """Create an RSA key standing in for the key held by KMS."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_public_der(rsa_private_key: rsa.RSAPrivateKey) -> bytes:
    """Return the DER SPKI encoding of the RSA public key."""
    return public_der(rsa_private_key)


@pytest.fixture
def fake_client(
    ec_private_key: ec.EllipticCurvePrivateKey, ec_public_der: bytes
) -> Generator[FakeKmsClient, None, None]:
    """Create a fake KMS client that really signs digests with the EC key."""

    def ecdsa_sign(request: dict[str, Any]) -> bytes:
        return ec_private_key.sign(
            request["Message"], ec.ECDSA(Prehashed(hashes.SHA256()))
        )

    client = FakeKmsClient(ec_public_der, sign_fn=ecdsa_sign)
    yield client
    client.release.set()


@pytest.fixture
def make_fake_client() -> Generator[Callable[..., FakeKmsClient], None, None]:
    """Return a factory for fake clients; stalled calls are released at teardown."""
    created: list[FakeKmsClient] = []

    def factory(*args: Any, **kwargs: Any) -> FakeKmsClient:
        client = FakeKmsClient(*args, **kwargs)
        created.append(client)
        return client

    yield factory
    for client in created:
        client.release.set()


@pytest.fixture
def kms_client() -> Any:
    """Create a real boto3 KMS client that never leaves the process."""
    return boto3.client(
        "kms",
        region_name="us-east-1",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


@pytest.fixture
def stubber(kms_client: Any) -> Generator[Stubber, None, None]:
    """Activate a botocore Stubber on the KMS client."""
    with Stubber(kms_client) as stub:
        yield stub


@pytest.fixture
def config() -> SignerConfig:
    """Create a test configuration."""
    return SignerConfig(
        key_id="k1",
        region="us-east-1",
        retrieval_timeout=2.0,
        sign_timeout=2.0,
        log_level="DEBUG",
    )
