"""
Token signer for the App Store Connect API.

Builds a compact ``header.payload.signature`` token signed with ES256
(ECDSA P-256 over SHA-256). Each segment is base64url without padding.

App Store Connect documentation:
https://developer.apple.com/documentation/appstoreconnectapi/generating-tokens-for-api-requests
"""

from __future__ import annotations

import base64
import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from versionsync.core.exceptions import SigningKeyError


AUDIENCE = "appstoreconnect-v1"
ALGORITHM = "ES256"
DEFAULT_LIFETIME = 1200  # 20 minutes, the maximum App Store Connect accepts

# P-256 coordinates and signature halves are 32 bytes each
_COMPONENT_SIZE = 32


def b64url_encode(data: bytes) -> str:
    """Base64url-encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def decode_segment(segment: str) -> bytes:
    """Decode one base64url token segment, restoring the padding."""
    padding = "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(segment + padding)


def decode_claims(token: str) -> tuple[dict[str, Any], dict[str, Any]]:
    """Return the decoded ``(header, payload)`` of a token without verifying it."""
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError(f"Expected 3 token segments, got {len(parts)}")
    return json.loads(decode_segment(parts[0])), json.loads(decode_segment(parts[1]))


class TokenSigner:
    """
    Signs short-lived App Store Connect tokens.

    The private key is loaded lazily and kept for the signer's lifetime.
    Tokens themselves are not cached; call ``generate()`` per request.
    """

    def __init__(
        self,
        key_id: str,
        issuer_id: str,
        key_path: Path | str,
        lifetime: int = DEFAULT_LIFETIME,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the signer.

        Args:
            key_id: Key identifier (``kid`` header and ``sub`` claim)
            issuer_id: Issuer identifier (``iss`` claim)
            key_path: Path to the ``AuthKey_<key_id>.p8`` PEM file
            lifetime: Token validity in seconds
            clock: Source of the current Unix time
        """
        self.key_id = key_id
        self.issuer_id = issuer_id
        self.key_path = Path(key_path)
        self.lifetime = lifetime
        self._clock = clock
        self._private_key: ec.EllipticCurvePrivateKey | None = None
        self.logger = logging.getLogger("TokenSigner")

    def load_key(self) -> ec.EllipticCurvePrivateKey:
        """
        Load and validate the P-256 private key.

        Raises:
            SigningKeyError: If the file is missing, unparseable or not P-256.
        """
        if self._private_key is not None:
            return self._private_key

        if not self.key_path.is_file():
            raise SigningKeyError(f"Signing key not found: {self.key_path}", key_path=self.key_path)

        try:
            pem = self.key_path.read_bytes()
        except OSError as e:
            raise SigningKeyError(f"Cannot read signing key: {self.key_path}", key_path=self.key_path, cause=e)

        try:
            key = serialization.load_pem_private_key(pem, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise SigningKeyError(
                f"Cannot parse signing key: {self.key_path}", key_path=self.key_path, cause=e
            )

        if not isinstance(key, ec.EllipticCurvePrivateKey) or not isinstance(key.curve, ec.SECP256R1):
            raise SigningKeyError(
                f"Signing key is not an EC P-256 key: {self.key_path}", key_path=self.key_path
            )

        self._private_key = key
        return key

    def header(self) -> dict[str, str]:
        return {"alg": ALGORITHM, "kid": self.key_id, "typ": "JWT"}

    def claims(self, now: int | None = None) -> dict[str, Any]:
        issued_at = int(self._clock()) if now is None else now
        return {
            "iss": self.issuer_id,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
            "aud": AUDIENCE,
            "sub": self.key_id,
        }

    def generate(self) -> str:
        """
        Build and sign a new token.

        Raises:
            SigningKeyError: If the key cannot be loaded.
        """
        key = self.load_key()

        header = b64url_encode(_compact_json(self.header()))
        payload = b64url_encode(_compact_json(self.claims()))
        signing_input = f"{header}.{payload}".encode("ascii")

        der_signature = key.sign(signing_input, ec.ECDSA(hashes.SHA256()))
        signature = b64url_encode(der_to_raw_signature(der_signature))

        self.logger.debug(f"Generated token for key {self.key_id}")
        return f"{header}.{payload}.{signature}"


def der_to_raw_signature(der_signature: bytes) -> bytes:
    """Convert a DER ECDSA signature to the fixed-size ``r || s`` form JWS uses."""
    r, s = decode_dss_signature(der_signature)
    return r.to_bytes(_COMPONENT_SIZE, "big") + s.to_bytes(_COMPONENT_SIZE, "big")


def _compact_json(data: dict[str, Any]) -> bytes:
    return json.dumps(data, separators=(",", ":")).encode("utf-8")
