"""Symbiotic CLI execution utilities."""

import asyncio
import logging
import os
from typing import List, Optional

from symbiotic_mcp.core.config import ServerConfig
from symbiotic_mcp.core.models import ScanInvocationResult, ScanType

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124  # same convention as coreutils timeout(1)
SPAWN_ERROR_EXIT_CODE = 1

_READ_CHUNK_SIZE = 64 * 1024
_KILL_GRACE_SECONDS = 5


def build_cli_environment(config: ServerConfig) -> dict:
    """
    Environment for the CLI process.

    The CLI reads its connection settings from the environment, so the
    server's resolved settings are exported on top of the inherited ones.
    """
    env = os.environ.copy()
    env["SYMBIOTIC_IS_ONLINE"] = "true" if config.symbiotic.is_online else "false"
    env["SYMBIOTIC_TARGET_API"] = config.symbiotic.target_api

    if config.symbiotic.api_token:
        env["SYMBIOTIC_API_TOKEN"] = config.symbiotic.api_token

    return env


async def _drain(stream: Optional[asyncio.StreamReader], chunks: List[bytes]) -> None:
    """Read a pipe to EOF, keeping every chunk so partial output survives a kill."""
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK_SIZE)
        if not chunk:
            return
        chunks.append(chunk)


def _decode(chunks: List[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace").strip()


class SymbioticCliClient:
    """Runs the Symbiotic CLI as a subprocess with a wall-clock timeout."""

    def __init__(self, cli_path: str, timeout_ms: int, env: Optional[dict] = None):
        self.cli_path = cli_path
        self.timeout_ms = timeout_ms
        self.env = env

    async def run(self, args: List[str]) -> ScanInvocationResult:
        """
        Run the CLI with args and capture its output.

        Never raises for process-level failures:
        - spawn failure -> exit_code 1, stderr carries the OS error
        - timeout       -> process killed, exit_code 124
        - normal exit   -> real exit code, success when it is 0

        Args:
            args: CLI arguments (e.g., ["code", "scan", "/tmp/dir"])

        Returns:
            ScanInvocationResult
        """
        cmd = [self.cli_path, *args]
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
            )
        except OSError as e:
            logger.error(f"Could not start {self.cli_path}: {e}")
            return ScanInvocationResult(
                stdout="", stderr=str(e), exit_code=SPAWN_ERROR_EXIT_CODE, success=False
            )

        # Nothing is ever sent to the CLI
        if proc.stdin is not None:
            proc.stdin.close()

        stdout_chunks: List[bytes] = []
        stderr_chunks: List[bytes] = []

        async def communicate() -> int:
            await asyncio.gather(
                _drain(proc.stdout, stdout_chunks), _drain(proc.stderr, stderr_chunks)
            )
            return await proc.wait()

        try:
            exit_code = await asyncio.wait_for(communicate(), timeout=self.timeout_ms / 1000)
        except asyncio.TimeoutError:
            logger.error(f"Symbiotic CLI timed out after {self.timeout_ms}ms, killing pid {proc.pid}")
            await self._kill(proc)
            return ScanInvocationResult(
                stdout=_decode(stdout_chunks),
                stderr=f"Command timed out after {self.timeout_ms}ms",
                exit_code=TIMEOUT_EXIT_CODE,
                success=False,
            )

        if exit_code != 0:
            logger.warning(f"Symbiotic CLI exited with code {exit_code}: {' '.join(cmd)}")

        return ScanInvocationResult(
            stdout=_decode(stdout_chunks),
            stderr=_decode(stderr_chunks),
            exit_code=exit_code,
            success=exit_code == 0,
        )

    @staticmethod
    async def _kill(proc: asyncio.subprocess.Process) -> None:
        try:
            proc.kill()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(proc.wait(), timeout=_KILL_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(f"⚠️  pid {proc.pid} did not exit after SIGKILL")

    async def code_scan(self, path: str) -> ScanInvocationResult:
        return await self.run(["code", "scan", path])

    async def infra_scan(self, path: str) -> ScanInvocationResult:
        return await self.run(["infra", "scan", path])

    async def scan(self, scan_type: ScanType, path: str) -> ScanInvocationResult:
        """Dispatch to code_scan or infra_scan."""
        if scan_type == "code":
            return await self.code_scan(path)
        if scan_type == "infra":
            return await self.infra_scan(path)
        raise ValueError(f"Unknown scan type: {scan_type}")


def get_symbiotic_client(config: ServerConfig) -> SymbioticCliClient:
    """Build a CLI client from the server configuration."""
    return SymbioticCliClient(
        cli_path=config.symbiotic.cli_path,
        timeout_ms=config.symbiotic.process_timeout_ms,
        env=build_cli_environment(config),
    )
