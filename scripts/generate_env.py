#!/usr/bin/env python
"""
PharmaDesk setup script.
Generates the secret keys and writes a starter .env file.
"""
import secrets
import string
from pathlib import Path


def generate_secret_key(length=50):
    """Generate a Django secret key."""
    chars = string.ascii_letters + string.digits + '!@#$%^&*(-_=+)'
    return ''.join(secrets.choice(chars) for _ in range(length))


def generate_fernet_key():
    """Generate the Fernet key used to encrypt the stored AI API key."""
    from cryptography.fernet import Fernet
    return Fernet.generate_key().decode()


def generate_password(length=16):
    chars = string.ascii_letters + string.digits
    return ''.join(secrets.choice(chars) for _ in range(length))


def create_env_file():
    env_path = Path('.env')

    if env_path.exists():
        print("WARNING: .env already exists!")
        response = input("Overwrite? (y/n): ").lower()
        if response != 'y':
            print("Setup cancelled.")
            return False

    db_password = generate_password(20)

    env_content = f"""# PharmaDesk configuration - generated
# Keep this file private.

# Django
DJANGO_SECRET_KEY={generate_secret_key()}
DEBUG=False
ALLOWED_HOSTS=localhost,127.0.0.1
CSRF_TRUSTED_ORIGINS=http://localhost
SITE_URL=http://localhost:5000
TIME_ZONE=UTC

# Database
POSTGRES_DB=pharmadesk
POSTGRES_USER=pharmadesk
POSTGRES_PASSWORD={db_password}
DATABASE_URL=postgresql://pharmadesk:{db_password}@db:5432/pharmadesk

# Encryption of secrets stored in the database
ENCRYPTION_KEY={generate_fernet_key()}

# Celery
REDIS_URL=redis://redis:6379/0

# AI assistant (can also be set in the admin under System settings)
GEMINI_API_KEY=
GEMINI_MODEL=gemini-2.5-flash

# Outgoing mail for task reminders and password resets
EMAIL_BACKEND=django.core.mail.backends.smtp.EmailBackend
EMAIL_HOST=
EMAIL_HOST_USER=
EMAIL_HOST_PASSWORD=
DEFAULT_FROM_EMAIL=noreply@pharmadesk.app
"""

    env_path.write_text(env_content)

    print("\n" + "=" * 60)
    print("PHARMADESK SETUP COMPLETE")
    print("=" * 60)
    print("\n.env was written with a generated secret key, database password")
    print("and encryption key.")
    print("=" * 60)
    return True


def main():
    print("\n" + "=" * 60)
    print("PharmaDesk - Pharmacy Workspace Setup")
    print("=" * 60 + "\n")

    if create_env_file():
        print("\nNext steps:")
        print("1. python main.py migrate")
        print("2. python main.py create_organization \"My Pharmacy\" --admin-email you@example.com")
        print("3. python main.py runserver and sign in with the printed password")


if __name__ == '__main__':
    main()
