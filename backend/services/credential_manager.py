"""Keyring-backed storage for aggregator and scheduler secrets.

Secrets listed in :data:`CREDENTIAL_KEYS` can live in the OS keychain
instead of ``.env``. :class:`config.KeychainSettingsSource` reads them
before the environment, so a stored secret overrides an exported one.
"""

import logging

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "networth-dashboard"

CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "GOCARDLESS_SECRET_ID",
        "GOCARDLESS_SECRET_KEY",
        "CRON_SECRET",
    }
)


def get_credential(key: str) -> str | None:
    """Look up a secret in the keychain.

    Returns ``None`` when the key is unknown, not stored, or the keychain
    backend is unavailable.
    """
    if key not in CREDENTIAL_KEYS:
        return None
    try:
        return keyring.get_password(SERVICE_NAME, key)
    except KeyringError:
        logger.debug("Keychain lookup failed for %s", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store a secret in the keychain.

    Args:
        key: Credential name; must be one of ``CREDENTIAL_KEYS``.
        value: Non-blank secret value.

    Returns:
        ``True`` when the keychain accepted the value.
    """
    if key not in CREDENTIAL_KEYS:
        logger.warning("Refusing to store unknown credential key %s", key)
        return False
    if not value or not value.strip():
        logger.warning("Refusing to store blank value for %s", key)
        return False

    try:
        keyring.set_password(SERVICE_NAME, key, value.strip())
    except KeyringError:
        logger.warning("Could not store %s in keychain", key, exc_info=True)
        return False
    logger.info("Stored %s in keychain", key)
    return True


def delete_credential(key: str) -> bool:
    """Remove a secret from the keychain; ``False`` if it was not there."""
    if key not in CREDENTIAL_KEYS:
        logger.warning("Refusing to delete unknown credential key %s", key)
        return False
    try:
        keyring.delete_password(SERVICE_NAME, key)
    except PasswordDeleteError:
        return False
    except KeyringError:
        logger.debug("Could not delete %s from keychain", key, exc_info=True)
        return False
    logger.info("Deleted %s from keychain", key)
    return True


def list_credentials() -> list[str]:
    """Names of the credentials currently stored in the keychain."""
    return [key for key in sorted(CREDENTIAL_KEYS) if get_credential(key) is not None]
