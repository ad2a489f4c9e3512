"""Centralized configuration for the scheduling & quotation agent.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/scheduling-agent/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415 (lazy: boto3 is only needed on AWS)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/scheduling-agent/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /scheduling-agent/{name} (AWS)."
    )


# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str = _require_env("ANTHROPIC_API_KEY")

# Code generation needs a strong, deterministic model; pricing drafts do not.
CODEGEN_MODEL_NAME: str = os.getenv("CODEGEN_MODEL_NAME", "claude-sonnet-4-5")
FAST_MODEL_NAME: str = os.getenv("FAST_MODEL_NAME", "claude-haiku-4-5")

# ── Embeddings ──────────────────────────────────────────────────────
OPENAI_API_KEY: str = _require_env("OPENAI_API_KEY")
EMBEDDING_MODEL_NAME: str = os.getenv("EMBEDDING_MODEL_NAME", "text-embedding-3-small")
EMBEDDING_DIM: int = int(os.getenv("EMBEDDING_DIM", "1536"))

# ── Qdrant ──────────────────────────────────────────────────────────
QDRANT_URL: str = os.getenv("QDRANT_URL", "http://localhost:6333")
QDRANT_API_KEY: str | None = os.getenv("QDRANT_API_KEY") or None
QDRANT_COLLECTION: str = os.getenv("QDRANT_COLLECTION", "cleaning_services")

# ── Piston code-execution sandbox ───────────────────────────────────
PISTON_BASE_URL: str = os.getenv("PISTON_BASE_URL", "https://emkc.org/api/v2/piston")
# Empty means "latest python runtime the sandbox advertises".
PISTON_PYTHON_VERSION: str = os.getenv("PISTON_PYTHON_VERSION", "")
PISTON_RUN_TIMEOUT_MS: int = int(os.getenv("PISTON_RUN_TIMEOUT_MS", "3000"))
PISTON_COMPILE_TIMEOUT_MS: int = int(os.getenv("PISTON_COMPILE_TIMEOUT_MS", "10000"))
PISTON_RUN_MEMORY_LIMIT: int = int(os.getenv("PISTON_RUN_MEMORY_LIMIT", str(128 * 1024 * 1024)))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
