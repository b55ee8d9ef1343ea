"""
Transaction signing for the Sui chain.

Sui expects a serialized signature of the form
``flag || signature || public_key``, base64-encoded, where the flag byte
identifies the signature scheme.
"""
import base64
import binascii
import hashlib
import logging
import re
from typing import Protocol, Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, NoEncryption, PrivateFormat, PublicFormat

from ..exceptions import ConfigurationError
from ..utils import redact

logger = logging.getLogger(__name__)

ED25519_FLAG = 0x00
SEED_LENGTH = 32
SIGNATURE_LENGTH = 64
PUBLIC_KEY_LENGTH = 32

_HEX_RE = re.compile(r"^(0x)?[0-9a-fA-F]+$")


class Signer(Protocol):
    """Protocol for transaction signers"""
    address: str

    @property
    def public_key_bytes(self) -> bytes:
        ...

    def sign(self, data: bytes) -> str:
        """Sign raw transaction bytes and return the base64 signature envelope"""
        ...


def decode_seed(material: Union[str, bytes]) -> bytes:
    """
    Decode private key material into a 32-byte Ed25519 seed.

    Accepts raw bytes, hex (with or without ``0x``) or base64. A 33-byte
    value whose first byte is the Ed25519 scheme flag has the flag stripped.

    Raises:
        ConfigurationError: If the material cannot be decoded or has the
            wrong length
    """
    if isinstance(material, (bytes, bytearray)):
        raw = bytes(material)
    elif isinstance(material, str):
        text = material.strip()
        if not text:
            raise ConfigurationError("private key is empty")
        raw = b""
        if _HEX_RE.match(text):
            hex_text = text[2:] if text.startswith("0x") else text
            if len(hex_text) % 2 == 0:
                raw = bytes.fromhex(hex_text)
        if len(raw) not in (SEED_LENGTH, SEED_LENGTH + 1):
            try:
                raw = base64.b64decode(text, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ConfigurationError("private key is neither hex nor base64") from e
    else:
        raise ConfigurationError(f"private key must be str or bytes, got {type(material).__name__}")

    if len(raw) == SEED_LENGTH + 1:
        if raw[0] != ED25519_FLAG:
            raise ConfigurationError(f"unsupported signature scheme flag: 0x{raw[0]:02x}")
        raw = raw[1:]

    if len(raw) != SEED_LENGTH:
        raise ConfigurationError(f"private key must be {SEED_LENGTH} bytes, got {len(raw)}")
    return raw


def derive_address(public_key: bytes, flag: int = ED25519_FLAG) -> str:
    """
    Derive the Sui address for a public key.

    Args:
        public_key: Raw public key bytes
        flag: Signature scheme flag

    Returns:
        ``0x``-prefixed 32-byte hex address
    """
    digest = hashlib.blake2b(bytes([flag]) + public_key, digest_size=32).digest()
    return "0x" + digest.hex()


class Ed25519Signer:
    """
    Ed25519 keypair producing Sui signature envelopes.

    The keypair is derived once at construction; signing itself cannot fail
    for a well-formed key and is deterministic.
    """

    def __init__(self, private_key: Union[str, bytes]):
        """
        Args:
            private_key: 32-byte seed as bytes, hex or base64

        Raises:
            ConfigurationError: If the key material is malformed
        """
        seed = decode_seed(private_key)
        self._private_key = Ed25519PrivateKey.from_private_bytes(seed)
        self._public_key = self._private_key.public_key().public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )
        self.address = derive_address(self._public_key)
        logger.info("Loaded signer %s", redact(self.address))

    @classmethod
    def generate(cls) -> "Ed25519Signer":
        """Create a signer with a fresh random key"""
        key = Ed25519PrivateKey.generate()
        return cls(key.private_bytes(Encoding.Raw, PrivateFormat.Raw, NoEncryption()))

    @property
    def public_key_bytes(self) -> bytes:
        return self._public_key

    def sign(self, data: bytes) -> str:
        """
        Sign transaction bytes.

        Args:
            data: Exact unsigned transaction bytes returned by the node

        Returns:
            base64(flag || signature || public_key)
        """
        signature = self._private_key.sign(bytes(data))
        envelope = bytes([ED25519_FLAG]) + signature + self._public_key
        return base64.b64encode(envelope).decode("ascii")

    def __repr__(self) -> str:
        return f"Ed25519Signer(address={self.address!r})"


def verify_signature(envelope_b64: str, data: bytes) -> bool:
    """
    Verify a base64 signature envelope against the bytes it claims to sign.

    Returns:
        True if the envelope is well-formed Ed25519 and the signature verifies
    """
    try:
        envelope = base64.b64decode(envelope_b64, validate=True)
    except (binascii.Error, ValueError):
        return False
    if len(envelope) != 1 + SIGNATURE_LENGTH + PUBLIC_KEY_LENGTH or envelope[0] != ED25519_FLAG:
        return False

    signature = envelope[1:1 + SIGNATURE_LENGTH]
    public_key = Ed25519PublicKey.from_public_bytes(envelope[1 + SIGNATURE_LENGTH:])
    try:
        public_key.verify(signature, bytes(data))
        return True
    except InvalidSignature:
        return False
