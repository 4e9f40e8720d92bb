# zyro/lib/secrets.py
"""
Envelope encryption for user-supplied provider API keys (AES-256-GCM).
"""
import base64
import binascii
import os
import re
from typing import Optional

from pydantic import BaseModel
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.backends import default_backend

from zyro.core.config import settings
from zyro.core.exceptions import DecryptionError, InvalidInputError, MissingMasterKeyError
from zyro.core.logging import log


NONCE_BYTES = 12  # 96-bit nonce recommended for GCM
KEY_BYTES = 32

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")


class EncryptedApiKey(BaseModel):
    iv: bytes
    ciphertext: bytes
    auth_tag: bytes
    last4: str


def load_master_key(raw: Optional[str] = None) -> bytes:
    """
    Decode the server-held master key.

    Accepts 64 hex characters or base64. Anything that does not decode to
    32 bytes is rejected.
    """
    raw = raw if raw is not None else settings.security.encryption_key
    if not raw:
        raise MissingMasterKeyError(
            "Missing API_KEY_ENCRYPTION_KEY (required to encrypt/decrypt user API keys)"
        )

    try:
        key = bytes.fromhex(raw) if _HEX_KEY.match(raw) else base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        raise MissingMasterKeyError("API_KEY_ENCRYPTION_KEY is not valid hex or base64")

    if len(key) != KEY_BYTES:
        raise MissingMasterKeyError(
            f"API_KEY_ENCRYPTION_KEY must decode to {KEY_BYTES} bytes (got {len(key)})"
        )
    return key


def encrypt_api_key(api_key: str, master_key: Optional[str] = None) -> EncryptedApiKey:
    """
    Encrypt a provider API key with a fresh random nonce.

    last4 is kept in clear for display only.
    """
    normalized = (api_key or "").strip()
    if not normalized:
        raise InvalidInputError("API key is required")

    key = load_master_key(master_key)
    iv = os.urandom(NONCE_BYTES)

    encryptor = Cipher(
        algorithms.AES(key),
        modes.GCM(iv),
        backend=default_backend()
    ).encryptor()

    ciphertext = encryptor.update(normalized.encode("utf-8")) + encryptor.finalize()

    return EncryptedApiKey(
        iv=iv,
        ciphertext=ciphertext,
        auth_tag=encryptor.tag,
        last4=normalized[-4:],
    )


def decrypt_api_key(iv: bytes, ciphertext: bytes, auth_tag: bytes, master_key: Optional[str] = None) -> str:
    """
    Decrypt and verify. Raises DecryptionError when the tag does not verify;
    no plaintext is returned in that case.
    """
    key = load_master_key(master_key)

    try:
        decryptor = Cipher(
            algorithms.AES(key),
            modes.GCM(bytes(iv), bytes(auth_tag)),
            backend=default_backend()
        ).decryptor()
        plaintext = decryptor.update(bytes(ciphertext)) + decryptor.finalize()
    except (InvalidTag, ValueError) as e:
        log("VAULT", f"Decryption failed: {type(e).__name__}")
        raise DecryptionError("Stored API key failed authentication")

    return plaintext.decode("utf-8")
