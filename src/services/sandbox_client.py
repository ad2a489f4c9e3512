"""HTTP client for the Piston code-execution sandbox with retry and
timeout handling.

Piston API docs: https://github.com/engineer-man/piston#public-api
Code is submitted as a single file to ``POST /execute``; the response
carries the captured ``stdout`` / ``stderr`` of the run stage.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from src.config import (
    PISTON_BASE_URL,
    PISTON_COMPILE_TIMEOUT_MS,
    PISTON_PYTHON_VERSION,
    PISTON_RUN_MEMORY_LIMIT,
    PISTON_RUN_TIMEOUT_MS,
)
from src.services.metrics import metrics

logger = logging.getLogger(__name__)

# ── Retry configuration ─────────────────────────────────────────────
MAX_RETRIES = 3
INITIAL_BACKOFF_SECONDS = 1.0
# Upper bound for the HTTP round-trip; the sandbox enforces its own run limits.
REQUEST_TIMEOUT_SECONDS = 30.0


class SandboxAPIError(Exception):
    """Raised when a Piston API call fails after all retries."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class ExecutionResult:
    """Captured output of one sandbox run."""

    stdout: str
    stderr: str = ""
    exit_code: int | None = 0
    signal: str | None = None
    language: str = "python"
    version: str = ""

    @property
    def succeeded(self) -> bool:
        return self.signal is None and self.exit_code in (0, None)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> ExecutionResult:
        run = data.get("run") or {}
        return cls(
            stdout=run.get("stdout") or "",
            stderr=run.get("stderr") or "",
            exit_code=run.get("code"),
            signal=run.get("signal"),
            language=data.get("language", ""),
            version=data.get("version", ""),
        )


class PistonClient:
    """Thin wrapper around the Piston REST API with automatic retries.

    Every execution request carries explicit ``run_timeout``,
    ``compile_timeout`` and ``run_memory_limit`` values so the limits are
    part of the request rather than whatever the sandbox defaults to.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        python_version: str | None = None,
        run_timeout_ms: int = PISTON_RUN_TIMEOUT_MS,
        compile_timeout_ms: int = PISTON_COMPILE_TIMEOUT_MS,
        run_memory_limit: int = PISTON_RUN_MEMORY_LIMIT,
    ):
        self._base_url = (base_url or PISTON_BASE_URL).rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            headers={"Content-Type": "application/json"},
            timeout=REQUEST_TIMEOUT_SECONDS,
        )
        self._run_timeout_ms = run_timeout_ms
        self._compile_timeout_ms = compile_timeout_ms
        self._run_memory_limit = run_memory_limit
        # language → version; pre-seeded when a python version is pinned
        self._versions: dict[str, str] = {}
        pinned = python_version if python_version is not None else PISTON_PYTHON_VERSION
        if pinned:
            self._versions["python"] = pinned

    # ── Internal helpers ─────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Execute an HTTP request with exponential-backoff retries."""
        last_error: Exception | None = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                response = self._client.request(method, path, json=json_body)
                if response.status_code >= 500:
                    raise SandboxAPIError(
                        f"Server error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )
                if response.status_code >= 400:
                    raise SandboxAPIError(
                        f"Client error {response.status_code}: {response.text}",
                        status_code=response.status_code,
                    )
                try:
                    return response.json()
                except ValueError as exc:
                    raise SandboxAPIError(
                        f"Invalid JSON in {response.status_code} response: {response.text[:200]}",
                        status_code=response.status_code,
                    ) from exc

            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_error = exc
                logger.warning(
                    "Piston API attempt %d/%d failed (%s). Retrying in %.1fs…",
                    attempt,
                    MAX_RETRIES,
                    type(exc).__name__,
                    INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)),
                )
            except SandboxAPIError as exc:
                if exc.status_code and exc.status_code >= 500:
                    last_error = exc
                    logger.warning(
                        "Piston API server error on attempt %d/%d. Retrying…",
                        attempt,
                        MAX_RETRIES,
                    )
                else:
                    raise

            time.sleep(INITIAL_BACKOFF_SECONDS * (2 ** (attempt - 1)))

        raise SandboxAPIError(
            f"Piston API request failed after {MAX_RETRIES} retries: {last_error}"
        )

    # ── Public API methods ───────────────────────────────────────────

    def list_runtimes(self) -> list[dict[str, Any]]:
        """Return the runtimes advertised by the sandbox."""
        return self._request("GET", "/runtimes")

    def resolve_version(self, language: str) -> str:
        """Return the pinned version for *language*, or the newest advertised one (cached)."""
        if language in self._versions:
            return self._versions[language]

        candidates = [
            rt["version"]
            for rt in self.list_runtimes()
            if rt.get("language") == language or language in rt.get("aliases", [])
        ]
        if not candidates:
            raise SandboxAPIError(f"Sandbox has no runtime for language {language!r}")

        version = max(candidates, key=_version_key)
        self._versions[language] = version
        logger.debug("Resolved %s runtime version %s", language, version)
        return version

    def execute(
        self,
        language: str,
        code: str,
        args: Sequence[str] = (),
    ) -> ExecutionResult:
        """Run *code* in the sandbox and return its captured output.

        Args:
            language: Piston language identifier (e.g. ``"python"``).
            code: Full source of the single file to run.
            args: Command-line arguments passed to the program.
        """
        payload = {
            "language": language,
            "version": self.resolve_version(language),
            "files": [{"content": code}],
            "args": list(args),
            "run_timeout": self._run_timeout_ms,
            "compile_timeout": self._compile_timeout_ms,
            "run_memory_limit": self._run_memory_limit,
        }
        with metrics.track("piston", "execute"):
            data = self._request("POST", "/execute", json_body=payload)

        result = ExecutionResult.from_response(data)
        logger.debug(
            "Sandbox run finished: exit=%s signal=%s stdout=%d bytes stderr=%d bytes",
            result.exit_code, result.signal, len(result.stdout), len(result.stderr),
        )
        return result

    def close(self) -> None:
        self._client.close()


def _version_key(version: str) -> tuple[int, ...]:
    parts = []
    for piece in version.split("."):
        digits = "".join(ch for ch in piece if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)

