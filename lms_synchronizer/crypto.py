"""
Encryption of LMS access tokens at rest.

Tokens are stored as ``<iv>.<tag>.<ciphertext>``, each part base64
encoded, using AES-256-GCM. The key comes from the `ENCRYPTION_SECRET`
environment variable, which may hold a base64 or hex encoded 32-byte
key or an arbitrary passphrase that is stretched with scrypt.
"""
import base64
import binascii
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .constants import IV_SIZE, KEY_SALT, KEY_SIZE
from .exceptions import TokenDecryptionError

TAG_SIZE = 16


def get_key(secret: str = None) -> bytes:
    if secret is None:
        secret = os.environ.get('ENCRYPTION_SECRET')
    if not secret:
        raise EnvironmentError('ENCRYPTION_SECRET is required for token '
                               'encryption.')

    try:
        key = base64.b64decode(secret)
        if len(key) == KEY_SIZE:
            return key
    except (binascii.Error, ValueError):
        pass

    try:
        key = bytes.fromhex(secret)
        if len(key) == KEY_SIZE:
            return key
    except ValueError:
        pass

    kdf = Scrypt(salt=KEY_SALT, length=KEY_SIZE, n=2 ** 14, r=8, p=1)
    return kdf.derive(secret.encode('utf-8'))


def encrypt_token(plain_text: str, secret: str = None) -> str:
    key = get_key(secret)
    iv = os.urandom(IV_SIZE)
    # AESGCM appends the tag to the ciphertext
    sealed = AESGCM(key).encrypt(iv, plain_text.encode('utf-8'), None)
    cipher_text, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
    return '.'.join(base64.b64encode(part).decode('ascii')
                    for part in (iv, tag, cipher_text))


def decrypt_token(payload: str, secret: str = None) -> str:
    """
    Decrypts a token produced by :func:`encrypt_token`.

    :param payload: the stored ``iv.tag.ciphertext`` string
    :param secret: overrides the `ENCRYPTION_SECRET` environment variable
    :raises TokenDecryptionError: when the payload is malformed or was
        encrypted under a different key
    :return: the plain text token
    """
    parts = payload.split('.') if payload else []
    if len(parts) != 3 or not all(parts):
        raise TokenDecryptionError('Invalid encrypted token payload.')

    try:
        iv, tag, cipher_text = (base64.b64decode(p) for p in parts)
    except (binascii.Error, ValueError):
        raise TokenDecryptionError('Encrypted token is not valid base64.')

    key = get_key(secret)
    try:
        plain = AESGCM(key).decrypt(iv, cipher_text + tag, None)
    except (InvalidTag, ValueError):
        raise TokenDecryptionError()
    return plain.decode('utf-8')
