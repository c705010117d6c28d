"""
Security scan tools.

Part of Symbiotic MCP. Registers:
- code_scan_files: code analysis of caller-supplied files
- infra_scan_files: infrastructure-as-code analysis of caller-supplied files
- security_scan_files: both scans, run concurrently
- scan_workspace: scan the configured workspace directory in place
"""

import logging
from typing import Annotated, Any, Dict, List, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from symbiotic_mcp.core.config import ServerConfig
from symbiotic_mcp.core.models import CodeFile
from symbiotic_mcp.tools.base import (
    ClientFactory,
    MultiScanTool,
    SingleScanTool,
    Tool,
    WorkspaceScanTool,
)

logger = logging.getLogger(__name__)

CODE_SCAN_DESCRIPTION = (
    "Run Symbiotic CLI code analysis on provided code files - creates temporary files, "
    "scans them, and cleans up. Ideal for analyzing code snippets or specific files for "
    "security vulnerabilities without affecting the workspace."
)

INFRA_SCAN_DESCRIPTION = (
    "Run Symbiotic CLI infrastructure security scanner on provided files - creates temporary "
    "files, scans them, and cleans up. Ideal for analyzing Dockerfiles, Kubernetes manifests, "
    "Terraform configs, and other infrastructure-as-code files without affecting the workspace."
)

SECURITY_SCAN_DESCRIPTION = (
    "Comprehensive security scan using Symbiotic CLI on provided files - creates temporary "
    "files, runs both code and infrastructure security analysis, and cleans up. Perfect for "
    "complete security analysis of code snippets and infrastructure files."
)

WORKSPACE_SCAN_DESCRIPTION = (
    "Run Symbiotic CLI directly on the configured workspace directory (editor workspace, "
    "MCP_SCAN_TARGET, or the enclosing git project). scan_type selects 'code', 'infra' "
    "or 'all' (default)."
)

CodeFileList = Optional[List[CodeFile]]


async def call_tool(tool: Tool, params: Dict[str, Any]) -> str:
    """Run a tool and translate an error response into an MCP tool error."""
    response = await tool.handle(params)
    if response.is_error:
        raise ToolError(response.text)
    return response.text


def _file_params(code_files, codeFiles, files) -> Dict[str, Any]:
    return {"code_files": code_files, "codeFiles": codeFiles, "files": files}


def register_scan_tools(
    mcp: FastMCP, config: ServerConfig, client_factory: Optional[ClientFactory] = None
) -> List[str]:
    """
    Register the scan tools on an MCP server.

    Args:
        mcp: FastMCP server instance
        config: Validated server configuration
        client_factory: Optional override for building CLI clients (tests)

    Returns:
        Names of the registered tools
    """
    code_scan = SingleScanTool(
        "code_scan_files", CODE_SCAN_DESCRIPTION, "code", config, client_factory
    )
    infra_scan = SingleScanTool(
        "infra_scan_files", INFRA_SCAN_DESCRIPTION, "infra", config, client_factory
    )
    security_scan = MultiScanTool(
        "security_scan_files", SECURITY_SCAN_DESCRIPTION, config, client_factory=client_factory
    )
    workspace_scan = WorkspaceScanTool(
        "scan_workspace", WORKSPACE_SCAN_DESCRIPTION, config, client_factory
    )

    @mcp.tool(name=code_scan.name, description=code_scan.description)
    async def code_scan_files(
        code_files: Annotated[CodeFileList, "Array of code files to process"] = None,
        codeFiles: Annotated[CodeFileList, "Array of code files to process (alias)"] = None,
        files: Annotated[CodeFileList, "Array of code files to process (alias)"] = None,
    ) -> str:
        return await call_tool(code_scan, _file_params(code_files, codeFiles, files))

    @mcp.tool(name=infra_scan.name, description=infra_scan.description)
    async def infra_scan_files(
        code_files: Annotated[CodeFileList, "Array of code files to process"] = None,
        codeFiles: Annotated[CodeFileList, "Array of code files to process (alias)"] = None,
        files: Annotated[CodeFileList, "Array of code files to process (alias)"] = None,
    ) -> str:
        return await call_tool(infra_scan, _file_params(code_files, codeFiles, files))

    @mcp.tool(name=security_scan.name, description=security_scan.description)
    async def security_scan_files(
        code_files: Annotated[CodeFileList, "Array of code files to process"] = None,
        codeFiles: Annotated[CodeFileList, "Array of code files to process (alias)"] = None,
        files: Annotated[CodeFileList, "Array of code files to process (alias)"] = None,
    ) -> str:
        return await call_tool(security_scan, _file_params(code_files, codeFiles, files))

    @mcp.tool(name=workspace_scan.name, description=workspace_scan.description)
    async def scan_workspace(
        scan_type: Annotated[str, "Which scans to run: 'code', 'infra' or 'all'"] = "all",
    ) -> str:
        return await call_tool(workspace_scan, {"scan_type": scan_type})

    names = [code_scan.name, infra_scan.name, security_scan.name, workspace_scan.name]
    logger.debug(f"Registered scan tools: {', '.join(names)}")
    return names
