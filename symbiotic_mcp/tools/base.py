"""
Scan orchestration shared by the MCP tools.

Every tool exposes the same small interface (name, description, handle) and
is composed from the staging, CLI and formatting helpers below:

- SingleScanTool: stage files, run one scan, fail on any CLI error
- MultiScanTool: stage files once, run several scans concurrently, report all
- WorkspaceScanTool: scan the configured workspace directory in place
- SimpleResponseTool: static text
"""

import asyncio
import inspect
import logging
import os
from typing import (
    Any,
    Awaitable,
    Callable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
)

from symbiotic_mcp.core.cli import SymbioticCliClient, get_symbiotic_client
from symbiotic_mcp.core.config import ServerConfig
from symbiotic_mcp.core.errors import (
    ExternalProcessError,
    InvalidInputError,
    InvalidPathError,
    SymbioticMCPError,
)
from symbiotic_mcp.core.models import (
    DEFAULT_COMBINED_SCANS,
    ScanInvocationResult,
    ScanOutcome,
    ScanSpec,
    ScanType,
    SecurityResult,
    ToolResponse,
)
from symbiotic_mcp.core.paths import get_secure_scan_target
from symbiotic_mcp.core.staging import staging_area
from symbiotic_mcp.tools.formatter import (
    format_findings,
    format_security_results,
    parse_findings,
    strip_staging_prefix,
)

logger = logging.getLogger(__name__)

# Accepted names for the file list, in lookup order
FILE_PARAM_ALIASES = ("code_files", "codeFiles", "files")

SECTION_SEPARATOR = "\n\n---\n\n"

ClientFactory = Callable[[], SymbioticCliClient]


class Tool(Protocol):
    name: str
    description: str

    async def handle(self, params: Mapping[str, Any]) -> ToolResponse: ...


def normalize_file_params(params: Optional[Mapping[str, Any]]) -> list:
    """Return the file list from whichever alias the caller used."""
    if not params:
        return []
    for alias in FILE_PARAM_ALIASES:
        value = params.get(alias)
        if value:
            return list(value)
    return []


def success_response(text: str) -> ToolResponse:
    return ToolResponse(text=text)


def error_response(tool_name: str, error: BaseException) -> ToolResponse:
    return ToolResponse(text=f"❌ Error executing {tool_name}: {error}", is_error=True)


def _log_failure(tool_name: str, error: Exception) -> None:
    if isinstance(error, SymbioticMCPError):
        logger.warning(f"⚠️  {tool_name} failed: {error}")
    else:
        logger.error(f"❌ {tool_name} failed unexpectedly: {error}", exc_info=True)


async def execute_scan(
    client: SymbioticCliClient, scan_type: ScanType, target_dir: str
) -> Tuple[ScanInvocationResult, SecurityResult]:
    """
    Run one scan and insist on a clean, parsable result.

    Output is stripped of target_dir before it is parsed or quoted in an error.

    Returns:
        The raw invocation result and its parsed findings

    Raises:
        ExternalProcessError: Non-zero exit code (including timeout and spawn failure)
        MalformedOutputError: stdout is not a well-formed JSON document
    """
    result = await client.scan(scan_type, target_dir)

    if result.exit_code != 0:
        detail = strip_staging_prefix(result.stderr or result.stdout, target_dir)
        raise ExternalProcessError(
            f"Symbiotic CLI {scan_type} scan failed (exit code {result.exit_code}): {detail}",
            exit_code=result.exit_code,
        )

    parsed = parse_findings(strip_staging_prefix(result.stdout, target_dir))
    return result, parsed


def append_warnings(text: str, result: ScanInvocationResult, root_dir: str) -> str:
    """Append the CLI's stderr, stripped of root_dir, as a warnings block."""
    if result.stderr:
        text += f"\n\n**Warnings:**\n{strip_staging_prefix(result.stderr, root_dir)}"
    return text


def format_scan_results(result: ScanInvocationResult, root_dir: str, scan_type: ScanType) -> str:
    """Strip the root directory from the output, format it and append stderr as warnings."""
    cleaned = strip_staging_prefix(result.stdout, root_dir)
    return append_warnings(format_security_results(cleaned, scan_type), result, root_dir)


async def run_sub_scan(client: SymbioticCliClient, spec: ScanSpec, target_dir: str) -> ScanOutcome:
    """Run one sub-scan of a multi-scan. Exceptions become a failed outcome."""
    try:
        result = await client.scan(spec.type, target_dir)
        return ScanOutcome(
            type=spec.type, label=spec.label, result=result, success=result.exit_code == 0
        )
    except Exception as e:
        logger.error(f"❌ {spec.label} raised: {e}")
        return ScanOutcome(
            type=spec.type,
            label=spec.label,
            result=ScanInvocationResult(
                stdout=f"{spec.label} error: {e}", stderr="", exit_code=1, success=False
            ),
            success=False,
            error=e,
        )


async def run_sub_scans(
    client: SymbioticCliClient, specs: Sequence[ScanSpec], target_dir: str
) -> List[ScanOutcome]:
    """Run every sub-scan concurrently. Results keep the order of specs."""
    return list(await asyncio.gather(*(run_sub_scan(client, s, target_dir) for s in specs)))


def render_outcomes(header: str, outcomes: Sequence[ScanOutcome], root_dir: str) -> str:
    """Concatenate sub-scan sections and collect their warnings in one block."""
    sections = []
    warnings = []

    for outcome in outcomes:
        result = outcome.result
        sections.append(format_scan_results(result, root_dir, outcome.type))

        if result.stderr:
            warnings.append(
                f"{outcome.label} warnings: {strip_staging_prefix(result.stderr, root_dir)}"
            )
        if result.exit_code != 0:
            warnings.append(f"{outcome.label} failed with exit code {result.exit_code}")

    text = f"{header}\n\n" + SECTION_SEPARATOR.join(sections)

    if warnings:
        text += "\n\n**Warnings:**\n" + "\n".join(warnings)

    return text


class SingleScanTool:
    """Stage the caller's files and run exactly one scan over them."""

    def __init__(
        self,
        name: str,
        description: str,
        scan_type: ScanType,
        config: ServerConfig,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.name = name
        self.description = description
        self.scan_type = scan_type
        self.config = config
        self.client_factory = client_factory or (lambda: get_symbiotic_client(config))

    async def handle(self, params: Mapping[str, Any]) -> ToolResponse:
        try:
            code_files = normalize_file_params(params)
            temp = self.config.temp_files

            async with staging_area(code_files, temp.prefix, temp.cleanup_on_error) as temp_dir:
                result, parsed = await execute_scan(
                    self.client_factory(), self.scan_type, temp_dir
                )
                text = append_warnings(format_findings(parsed, self.scan_type), result, temp_dir)

            logger.info(f"✅ {self.name} completed on {len(code_files)} files")
            return success_response(text)

        except Exception as e:
            _log_failure(self.name, e)
            return error_response(self.name, e)


class MultiScanTool:
    """Stage the caller's files once and run several scans over them concurrently."""

    def __init__(
        self,
        name: str,
        description: str,
        config: ServerConfig,
        scans: Sequence[ScanSpec] = DEFAULT_COMBINED_SCANS,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.name = name
        self.description = description
        self.config = config
        self.scans = list(scans)
        self.client_factory = client_factory or (lambda: get_symbiotic_client(config))

    async def handle(self, params: Mapping[str, Any]) -> ToolResponse:
        try:
            code_files = normalize_file_params(params)
            temp = self.config.temp_files

            async with staging_area(code_files, temp.prefix, temp.cleanup_on_error) as temp_dir:
                outcomes = await run_sub_scans(self.client_factory(), self.scans, temp_dir)
                text = render_outcomes(
                    f"✅ Comprehensive security scan completed on {len(code_files)} files",
                    outcomes,
                    temp_dir,
                )

            failed = [o.label for o in outcomes if not o.success]
            if failed:
                logger.warning(f"⚠️  {self.name}: sub-scans with problems: {', '.join(failed)}")
            logger.info(f"✅ {self.name} completed on {len(code_files)} files")
            return success_response(text)

        except Exception as e:
            _log_failure(self.name, e)
            return error_response(self.name, e)


class WorkspaceScanTool:
    """Scan the configured workspace directory in place, without staging."""

    SCAN_CHOICES = {
        "code": ["code"],
        "infra": ["infra"],
        "all": ["code", "infra"],
    }

    def __init__(
        self,
        name: str,
        description: str,
        config: ServerConfig,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.name = name
        self.description = description
        self.config = config
        self.client_factory = client_factory or (lambda: get_symbiotic_client(config))

    async def handle(self, params: Mapping[str, Any]) -> ToolResponse:
        try:
            scan_choice = ((params or {}).get("scan_type") or "all").lower()
            if scan_choice not in self.SCAN_CHOICES:
                raise InvalidInputError(
                    f"scan_type must be one of: {', '.join(self.SCAN_CHOICES)} (got {scan_choice!r})"
                )

            target = get_secure_scan_target(self.config)
            if not os.path.isdir(target):
                raise InvalidPathError(f"scan target path is not a directory: {target}")

            specs = [
                spec
                for spec in DEFAULT_COMBINED_SCANS
                if spec.type in self.SCAN_CHOICES[scan_choice]
            ]
            logger.info(f"Scanning workspace {target} ({scan_choice})")
            outcomes = await run_sub_scans(self.client_factory(), specs, target)

            text = render_outcomes(
                f"✅ Workspace security scan completed on {target}", outcomes, target
            )
            return success_response(text)

        except Exception as e:
            _log_failure(self.name, e)
            return error_response(self.name, e)


class SimpleResponseTool:
    """A tool that ignores its input and returns generated text."""

    def __init__(
        self,
        name: str,
        description: str,
        response_generator: Callable[[], Union[str, Awaitable[str]]],
    ):
        self.name = name
        self.description = description
        self.response_generator = response_generator

    async def handle(self, params: Optional[Mapping[str, Any]] = None) -> ToolResponse:
        try:
            text = self.response_generator()
            if inspect.isawaitable(text):
                text = await text
            return success_response(text)
        except Exception as e:
            _log_failure(self.name, e)
            return error_response(self.name, e)


