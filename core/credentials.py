"""
API key lookup for remote dependencies.

Keys come from the environment: ``<DEPENDENCY>_API_KEY`` first (for example
``AI_SERVER_API_KEY``), then the shared ``AI_API_KEY``.
"""
import os

from .errors import MissingCredentialsError

SHARED_KEY_ENV = "AI_API_KEY"


def get_api_key(dependency: str) -> str:
    """
    Return the bearer token for a dependency.

    Raises:
        MissingCredentialsError: If no key is configured
    """
    name = str(getattr(dependency, "value", dependency))
    specific_env = f"{name.upper()}_API_KEY"

    key = os.getenv(specific_env) or os.getenv(SHARED_KEY_ENV)
    if not key or not key.strip():
        raise MissingCredentialsError(
            f"No API key configured for {name}. Set {specific_env} or {SHARED_KEY_ENV}."
        )
    return key.strip()
