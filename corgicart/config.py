"""
Cart engine configuration.

Settings come from environment variables, optionally loaded from a `.env`
file in the working directory:

- CART_NAMESPACE: prefix of the persisted record keys (default "corgigo")
- CART_STORAGE_BACKEND: "memory", "file" or "redis" (default "memory")
- CART_STORAGE_DIR: directory used by the file backend (default ".cart")
- CART_TTL_SECONDS: expiry of Redis records (default 30 days)
- UPSTASH_REDIS_REST_URL / UPSTASH_REDIS_REST_TOKEN: Redis backend credentials
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

load_dotenv()

BACKEND_MEMORY = "memory"
BACKEND_FILE = "file"
BACKEND_REDIS = "redis"

DEFAULT_NAMESPACE = "corgigo"
DEFAULT_STORAGE_DIR = ".cart"
DEFAULT_TTL_SECONDS = 30 * 24 * 3600


@dataclass(frozen=True)
class CartSettings:
    """Resolved configuration for building a persistence adapter."""
    namespace: str = DEFAULT_NAMESPACE
    storage_backend: str = BACKEND_MEMORY
    storage_dir: str = DEFAULT_STORAGE_DIR
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    redis_url: str = ""
    redis_token: str = ""

    @property
    def redis_configured(self) -> bool:
        return bool(self.redis_url and self.redis_token)


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


def load_settings(env: Optional[Mapping[str, str]] = None) -> CartSettings:
    """
    Read settings from the environment.

    Args:
        env: Mapping to read from (defaults to os.environ)

    Returns:
        CartSettings with defaults filled in
    """
    env = os.environ if env is None else env
    return CartSettings(
        namespace=env.get("CART_NAMESPACE", "") or DEFAULT_NAMESPACE,
        storage_backend=(env.get("CART_STORAGE_BACKEND", "") or BACKEND_MEMORY).lower(),
        storage_dir=env.get("CART_STORAGE_DIR", "") or DEFAULT_STORAGE_DIR,
        ttl_seconds=_int_env(env, "CART_TTL_SECONDS", DEFAULT_TTL_SECONDS),
        redis_url=env.get("UPSTASH_REDIS_REST_URL", ""),
        redis_token=env.get("UPSTASH_REDIS_REST_TOKEN", ""),
    )
