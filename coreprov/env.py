"""Environment variable helpers."""

import os


def get_env_or_default(key, default_value):
    """Return the value of ``key`` from the environment, or ``default_value`` when unset."""
    return os.environ.get(key, default_value)