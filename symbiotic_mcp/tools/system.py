"""
Informational tools.

- get_supported_languages: Languages the Symbiotic scanners understand
- get_server_info: Server metadata for debugging client/server mismatches
"""

import logging
import sys
from typing import List

from fastmcp import FastMCP

from symbiotic_mcp import __version__
from symbiotic_mcp.core.config import ServerConfig
from symbiotic_mcp.core.models import SUPPORTED_LANGUAGES
from symbiotic_mcp.tools.base import SimpleResponseTool
from symbiotic_mcp.tools.scans import call_tool

logger = logging.getLogger(__name__)

SERVER_NAME = "symbiotic-mcp-server"


def supported_languages_text() -> str:
    return "✅ Supported languages:\n\n" + "\n".join(SUPPORTED_LANGUAGES)


def server_info_text(config: ServerConfig) -> str:
    """Describe the running server. The API token is never included."""
    symbiotic = config.symbiotic
    mode = "http" if config.is_http_mode else "stdio"

    output = []
    output.append(f"🛡️  {SERVER_NAME} v{__version__}")
    output.append("")
    output.append(f"Python: {sys.version.split()[0]} ({sys.platform})")
    output.append(f"Transport: {mode}")
    output.append(f"CLI path: {symbiotic.cli_path}")
    output.append(f"Mode: {'online' if symbiotic.is_online else 'offline'}")
    if symbiotic.is_online:
        output.append(f"Target API: {symbiotic.target_api}")
        output.append(f"API token: {'configured' if symbiotic.api_token else 'missing'}")
    output.append(f"Process timeout: {symbiotic.process_timeout_ms}ms")
    output.append(f"Temp prefix: {config.temp_files.prefix}")
    output.append(f"Cleanup on error: {config.temp_files.cleanup_on_error}")
    return "\n".join(output)


def register_system_tools(mcp: FastMCP, config: ServerConfig) -> List[str]:
    """Register the informational tools. Returns their names."""
    languages = SimpleResponseTool(
        "get_supported_languages",
        "Returns comprehensive list of programming languages supported by Symbiotic CLI "
        "security scanners for both code and infrastructure analysis",
        supported_languages_text,
    )
    info = SimpleResponseTool(
        "get_server_info",
        "Server metadata: name, version, transport, CLI path, online/offline mode and timeouts. "
        "Useful for debugging version mismatches and understanding server config.",
        lambda: server_info_text(config),
    )

    @mcp.tool(name=languages.name, description=languages.description)
    async def get_supported_languages() -> str:
        return await call_tool(languages, {})

    @mcp.tool(name=info.name, description=info.description)
    async def get_server_info() -> str:
        return await call_tool(info, {})

    return [languages.name, info.name]
