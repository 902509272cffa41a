"""
API key lookup for the classification providers.

Order: <PROVIDER>_API_KEY environment variable, then the OS credential
store through `keyring` (service "callsight", user "<provider>_api_key").
An explicit `api_key` in the provider config short-circuits both; that
check lives in the provider constructors.
"""

import logging
import os
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

logger = logging.getLogger(__name__)

SERVICE_NAME = "callsight"


def env_var_name(provider: str) -> str:
    return f"{provider.upper()}_API_KEY"


def _entry(provider: str) -> str:
    return f"{provider}_api_key"


def get_api_key(provider: str) -> Optional[str]:
    """
    Find the API key for `provider` ("groq", "gemini").

    A missing or broken keyring backend is not an error here; the caller
    decides what a missing key means.
    """
    from_env = os.environ.get(env_var_name(provider))
    if from_env:
        return from_env

    try:
        stored = keyring.get_password(SERVICE_NAME, _entry(provider))
    except KeyringError as e:
        logger.warning(f"Keyring unavailable, cannot read {provider} key: {e}")
        return None

    if stored:
        logger.debug(f"Using {provider} key from keyring")
    return stored


def set_api_key(provider: str, api_key: str) -> bool:
    try:
        keyring.set_password(SERVICE_NAME, _entry(provider), api_key)
    except KeyringError as e:
        logger.error(f"Could not save {provider} key to keyring: {e}")
        return False
    logger.info(f"Saved {provider} key to keyring")
    return True


def delete_api_key(provider: str) -> bool:
    try:
        keyring.delete_password(SERVICE_NAME, _entry(provider))
    except PasswordDeleteError:
        logger.warning(f"No stored {provider} key to delete")
        return False
    except KeyringError as e:
        logger.error(f"Could not delete {provider} key from keyring: {e}")
        return False
    logger.info(f"Removed {provider} key from keyring")
    return True
