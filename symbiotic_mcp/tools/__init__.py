"""
MCP tools for Symbiotic MCP.

Package Structure:
- formatter.py - Parsing and markdown rendering of CLI findings
- base.py - Scan orchestration (single, multi, workspace, static tools)
- scans.py - code_scan_files, infra_scan_files, security_scan_files, scan_workspace
- system.py - get_supported_languages, get_server_info
"""

from typing import List, Optional

from fastmcp import FastMCP

from symbiotic_mcp.core.config import ServerConfig
from symbiotic_mcp.tools.base import ClientFactory
from symbiotic_mcp.tools.scans import register_scan_tools
from symbiotic_mcp.tools.system import register_system_tools


def register_all_tools(
    mcp: FastMCP, config: ServerConfig, client_factory: Optional[ClientFactory] = None
) -> List[str]:
    """Register every tool on mcp and return the tool names."""
    return register_scan_tools(mcp, config, client_factory) + register_system_tools(mcp, config)


__all__ = [
    "register_all_tools",
    "register_scan_tools",
    "register_system_tools",
]
