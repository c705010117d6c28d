#!/usr/bin/env python3
"""
Symbiotic Security MCP Server

A Model Context Protocol server that runs the Symbiotic CLI security scanners
on code and infrastructure files supplied by the client.
"""

import logging
import sys
from typing import Optional

from fastmcp import FastMCP

from symbiotic_mcp import __version__
from symbiotic_mcp.core.config import ServerConfig, load_config, validate_environment
from symbiotic_mcp.core.errors import ConfigurationError
from symbiotic_mcp.tools import register_all_tools
from symbiotic_mcp.tools.base import ClientFactory

logger = logging.getLogger(__name__)

SERVER_INSTRUCTIONS = (
    "Security scanning with Symbiotic CLI. Send files with code_scan_files, "
    "infra_scan_files or security_scan_files; each call stages the files in a "
    "temporary directory that is removed when the scan finishes."
)


def create_server(config: ServerConfig, client_factory: Optional[ClientFactory] = None) -> FastMCP:
    """Build a FastMCP server with every tool registered against config."""
    mcp = FastMCP("Symbiotic Security", instructions=SERVER_INSTRUCTIONS)
    tool_names = register_all_tools(mcp, config, client_factory)
    logger.info(f"   📦 {len(tool_names)} tools registered")
    return mcp


def main():
    """Main entry point for the MCP server."""
    # Logs go to stderr so they never interleave with stdio JSON-RPC traffic
    logging.basicConfig(level=logging.INFO, stream=sys.stderr)

    try:
        config = load_config()
        validate_environment(config)
    except ConfigurationError as e:
        logger.error(f"❌ Fatal error in main(): {e}")
        sys.exit(1)

    logging.getLogger().setLevel(config.log_level)

    logger.info(f"🚀 Starting Symbiotic Security MCP Server v{__version__}...")
    logger.debug(f"   Configuration: {config.redacted()}")
    logger.info(f"   CLI: {config.symbiotic.cli_path} ({'online' if config.symbiotic.is_online else 'offline'})")

    mcp = create_server(config)

    if config.is_http_mode:
        logger.info(f"   Listening on http://{config.server.hostname}:{config.server.port}")
        mcp.run(transport="http", host=config.server.hostname, port=config.server.port)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
