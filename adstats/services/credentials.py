"""
Credential store — AES-256-GCM encryption of ad account access tokens.

Stored format (printable, fits a TEXT column):
    base64( hex(iv) ":" hex(ciphertext) ":" hex(tag) )

12-byte IV, 16-byte tag, 32-byte key supplied as 64 hex chars in
TOKEN_ENCRYPTION_KEY. Outside production a missing or malformed key falls back
to an ephemeral per-process key with a warning; tokens encrypted with it cannot
be read by any other process.
"""
import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from adstats.config import TOKEN_ENCRYPTION_KEY, APP_ENV
from adstats.exceptions import CredentialError

logger = logging.getLogger('services.credentials')

IV_BYTES = 12
TAG_BYTES = 16
KEY_HEX_LEN = 64

_key = None


def resolve_key(key_hex=None, app_env=None) -> bytes:
    """Decode the configured key, or fall back to an ephemeral one outside production."""
    key_hex = TOKEN_ENCRYPTION_KEY if key_hex is None else key_hex
    app_env = APP_ENV if app_env is None else app_env

    if key_hex and len(key_hex) == KEY_HEX_LEN:
        try:
            return bytes.fromhex(key_hex)
        except ValueError:
            pass

    if app_env == 'production':
        raise CredentialError('TOKEN_ENCRYPTION_KEY must be a 64-char hex string (32 bytes)')

    logger.warning("TOKEN_ENCRYPTION_KEY not set or invalid — using ephemeral key (DEV ONLY)")
    return AESGCM.generate_key(bit_length=256)


def get_key() -> bytes:
    global _key
    if _key is None:
        _key = resolve_key()
    return _key


def encrypt_token(plain_token: str, key: bytes = None) -> str:
    """Encrypt a plain access token for storage."""
    key = key or get_key()
    iv = os.urandom(IV_BYTES)
    sealed = AESGCM(key).encrypt(iv, plain_token.encode('utf-8'), None)
    ciphertext, tag = sealed[:-TAG_BYTES], sealed[-TAG_BYTES:]
    payload = ':'.join([iv.hex(), ciphertext.hex(), tag.hex()])
    return base64.b64encode(payload.encode('ascii')).decode('ascii')


def decrypt_token(enc_token: str, key: bytes = None) -> str:
    """
    Decrypt a stored token.

    Raises CredentialError on malformed payloads, wrong IV/tag lengths, a wrong
    key or tampered ciphertext.
    """
    if not enc_token:
        raise CredentialError('No access token stored for this ad account')
    key = key or get_key()
    try:
        payload = base64.b64decode(enc_token, validate=True).decode('ascii')
        parts = payload.split(':')
        if len(parts) != 3:
            raise CredentialError('Invalid token format: expected 3 colon-separated hex parts')
        iv, ciphertext, tag = (bytes.fromhex(part) for part in parts)
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise CredentialError(f'Invalid token encoding: {e}') from e

    if len(iv) != IV_BYTES:
        raise CredentialError(f'IV must be {IV_BYTES} bytes')
    if len(tag) != TAG_BYTES:
        raise CredentialError(f'Auth tag must be {TAG_BYTES} bytes')

    try:
        plain = AESGCM(key).decrypt(iv, ciphertext + tag, None)
    except InvalidTag as e:
        raise CredentialError('Failed to decrypt access token (wrong key or tampered data)') from e
    except ValueError as e:
        raise CredentialError(f'Invalid encryption key: {e}') from e
    return plain.decode('utf-8')
