"""
Wallet Authentication Utilities

This module handles the cryptographic side of wallet login (Solana-style ed25519 wallets,
where the wallet address is the base58 encoding of the 32-byte public key).

Authentication Flow:
1. Backend generates a challenge message -> generate_challenge()
2. Frontend signs the UTF-8 bytes of the message with the wallet (signMessage)
3. Frontend sends: walletAddress, challenge, signature, publicKey
4. Backend verifies: verify_signature()
   - Verifies ED25519 signature is valid over the exact challenge text
   - Verifies public key encodes to the claimed wallet address

Only verification happens here; the private key never leaves the client.
"""

import base64
import binascii
import re
import secrets
import time

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from app.core.config import settings


CHALLENGE_NUM_BYTES = 16  # 16 bytes = 32 hex characters
PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64
WALLET_ADDRESS_PATTERN = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")


def is_wallet_address(value: str) -> bool:
    """Check the base58 alphabet and the 32-44 character length of a wallet address."""
    return bool(WALLET_ADDRESS_PATTERN.match(value or ""))


def generate_challenge(num_bytes: int = CHALLENGE_NUM_BYTES) -> str:
    """
    Generate a human readable challenge message for wallet authentication.

    The message combines a random hex value with the issuance time in milliseconds,
    so every call yields a distinct message even for the same wallet.
    """
    if num_bytes <= 0:
        num_bytes = CHALLENGE_NUM_BYTES
    random_part = secrets.token_hex(num_bytes)
    timestamp = int(time.time() * 1000)
    return f"Sign this message to authenticate with {settings.PROJECT_NAME}: {random_part}-{timestamp}"


def _decode_hex(value: str) -> bytes:
    """Helper: Decode hex string to bytes."""
    return binascii.unhexlify(value.encode())


def _decode_base64(value: str) -> bytes:
    """Helper: Decode base64 string to bytes."""
    return base64.b64decode(value, validate=True)


def decode_hex_or_base64(value: str) -> bytes:
    """
    Helper: Decode hex or base64 string to bytes.

    Wallet adapters send signatures/keys in either format, so we support both.
    """
    value = value.strip()
    try:
        return _decode_hex(value)
    except (binascii.Error, ValueError):
        try:
            return _decode_base64(value)
        except (binascii.Error, ValueError):
            raise ValueError("Value must be hex or base64 encoded")


def public_key_matches_address(address: str, public_key_bytes: bytes) -> bool:
    """Verify that the public key is the one the wallet address encodes."""
    try:
        return base58.b58decode(address) == public_key_bytes
    except ValueError:
        return False


def verify_signature(address: str, message: str, signature: str, public_key: str) -> bool:
    """
    Verify a wallet signature over a challenge message.

    Args:
        address: Wallet address the caller claims
        message: The exact challenge text that was signed
        signature: ED25519 signature (hex or base64 encoded)
        public_key: ED25519 public key (hex or base64 encoded)

    Returns:
        True only if the signature is valid for the message under the public key
        and the public key belongs to the address.
    """
    try:
        signature_bytes = decode_hex_or_base64(signature)
        public_key_bytes = decode_hex_or_base64(public_key)
    except ValueError:
        return False

    if len(signature_bytes) != SIGNATURE_LENGTH or len(public_key_bytes) != PUBLIC_KEY_LENGTH:
        return False

    if not public_key_matches_address(address, public_key_bytes):
        return False

    try:
        Ed25519PublicKey.from_public_bytes(public_key_bytes).verify(signature_bytes, message.encode("utf-8"))
    except (InvalidSignature, ValueError):
        return False

    return True
