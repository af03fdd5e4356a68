"""Password encryption for the SSO login form."""

import base64
import binascii

from Crypto.Cipher import DES
from Crypto.Util.Padding import pad

from .exceptions import EncryptError

KEY_SIZE = 8


def encrypt_password(salt_b64: str, password: str) -> str:
    """Encrypt a password with the per-page key of the SSO login form.

    The login page publishes a base64 salt (``login-croypto``). The salt is
    the DES key, right-padded with ``0xFF`` up to 8 bytes. The password is
    PKCS#7 padded and encrypted in ECB mode.

    Args:
        salt_b64: Base64 salt scraped from the login page.
        password: Plaintext password.

    Returns:
        Base64 ciphertext to send as the ``password`` form field.

    Raises:
        EncryptError: If the salt is not valid base64 or is longer than a key.
    """
    try:
        salt = base64.b64decode(salt_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncryptError(f"Malformed login salt: {salt_b64!r}") from e

    if len(salt) > KEY_SIZE:
        raise EncryptError(f"Login salt is {len(salt)} bytes, expected at most {KEY_SIZE}")

    key = salt.ljust(KEY_SIZE, b"\xff")
    cipher = DES.new(key, DES.MODE_ECB)
    encrypted = cipher.encrypt(pad(password.encode("utf-8"), DES.block_size, style="pkcs7"))
    return base64.b64encode(encrypted).decode("ascii")
