import os
from cryptography.fernet import Fernet, InvalidToken
from django.conf import settings


def get_encryption_key():
    """Get the Fernet key used for secrets stored in the database."""
    key = settings.ENCRYPTION_KEY
    if not key:
        key = os.environ.get('ENCRYPTION_KEY')
    if not key:
        raise ValueError("ENCRYPTION_KEY environment variable is not set. Generate one with: python -c \"from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())\"")
    if isinstance(key, str):
        key = key.encode()
    return key


def get_fernet():
    return Fernet(get_encryption_key())


def encrypt_data(data):
    if isinstance(data, str):
        data = data.encode('utf-8')
    return get_fernet().encrypt(data)


def decrypt_data(encrypted_data):
    if isinstance(encrypted_data, memoryview):
        encrypted_data = bytes(encrypted_data)
    return get_fernet().decrypt(encrypted_data)


def decrypt_secret(encrypted_data):
    """
    Decrypt a stored secret to text. Returns an empty string when nothing is
    stored or the value was encrypted with a different key.
    """
    if not encrypted_data:
        return ''
    try:
        return decrypt_data(encrypted_data).decode('utf-8')
    except InvalidToken:
        return ''
