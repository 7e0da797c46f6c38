#!/usr/bin/env python3
"""GoCardless Bank Account Data setup script.

This script validates GoCardless user secrets against the token endpoint
and generates a CRON_SECRET for the scheduled daily sync.

Usage:
    1. Sign in at https://bankaccountdata.gocardless.com/
    2. Go to "User secrets" and create a new secret
    3. Run this script and paste the secret id and secret key when prompted
    4. Store the credentials in the keychain, or add them to your .env file
"""

import secrets
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from integrations.gocardless_client import GoCardlessClient
from services.credential_manager import set_credential


def _offer_keychain_store(credentials: dict[str, str]) -> None:
    """Prompt the user to store credentials in the OS keychain."""
    answer = input("\nStore these credentials in the system keychain? [Y/n] ").strip().lower()
    if answer in ("", "y", "yes"):
        for key, value in credentials.items():
            if set_credential(key, value):
                print(f"  Stored {key} in keychain")
            else:
                print(f"  Failed to store {key}")
    else:
        print("  Skipped keychain storage.")


def validate_credentials(secret_id: str, secret_key: str) -> bool:
    """Request an access token with the given secrets.

    Returns:
        True if GoCardless issued a token.
    """
    client = GoCardlessClient(secret_id=secret_id, secret_key=secret_key)
    try:
        return client.validate_credentials()
    finally:
        client.close()


def generate_cron_secret() -> str:
    """Random shared secret for the daily-update endpoint."""
    return secrets.token_urlsafe(32)


def main():
    """Validate GoCardless secrets and print the resulting settings."""
    print("GoCardless Bank Account Data Setup")
    print("=" * 50)
    print()
    print("You need a GoCardless user secret (id + key).")
    print("Create one under 'User secrets' in the Bank Account Data portal.")
    print()

    secret_id = input("Secret ID: ").strip()
    secret_key = input("Secret key: ").strip()

    if not secret_id or not secret_key:
        print("Error: Both secret id and secret key are required")
        sys.exit(1)

    print()
    print("Validating credentials...")

    if not validate_credentials(secret_id, secret_key):
        print("Error: GoCardless rejected these credentials.")
        print()
        print("Common issues:")
        print("  - Secret was revoked or copied incompletely")
        print("  - Secret id and key were swapped")
        print("  - Network connectivity issues")
        sys.exit(1)

    cron_secret = generate_cron_secret()
    credentials = {
        "GOCARDLESS_SECRET_ID": secret_id,
        "GOCARDLESS_SECRET_KEY": secret_key,
        "CRON_SECRET": cron_secret,
    }

    print()
    print("Success! Add the following to your .env file:")
    print()
    for key, value in credentials.items():
        print(f"{key}={value}")
    print()
    print("Configure your scheduler to call the daily update with:")
    print(f"  Authorization: Bearer {cron_secret}")
    _offer_keychain_store(credentials)


if __name__ == "__main__":
    main()
