"""End-to-end tests through an in-memory MCP client."""

import os

import pytest
from fastmcp import Client

import server
from symbiotic_mcp.core.models import SUPPORTED_LANGUAGES

pytestmark = pytest.mark.skipif(os.name == "nt", reason="stub scanners are shebang scripts")

EXPECTED_TOOLS = {
    "code_scan_files",
    "infra_scan_files",
    "security_scan_files",
    "scan_workspace",
    "get_supported_languages",
    "get_server_info",
}


@pytest.mark.asyncio
async def test_all_tools_are_listed(make_config):
    mcp = server.create_server(make_config())

    async with Client(mcp) as client:
        tools = {tool.name: tool for tool in await client.list_tools()}

    assert set(tools) == EXPECTED_TOOLS
    properties = tools["code_scan_files"].inputSchema["properties"]
    assert {"code_files", "codeFiles", "files"} <= set(properties)
    assert tools["code_scan_files"].description.startswith("Run Symbiotic CLI code analysis")


@pytest.mark.asyncio
async def test_code_scan_over_mcp(make_config, finding_scanner, staging_root):
    mcp = server.create_server(make_config(SYMBIOTIC_CLI_PATH=finding_scanner))

    async with Client(mcp) as client:
        result = await client.call_tool(
            "code_scan_files",
            {"files": [{"filename": "a.py", "content": "eval(input())"}]},
            raise_on_error=False,
        )

    assert not result.is_error
    text = result.content[0].text
    assert "🔴 CRITICAL" in text
    assert "python.lang.security.audit.eval-detected" in text
    assert "📁 **a.py**" in text
    assert str(staging_root) not in text
    assert os.listdir(staging_root) == []


@pytest.mark.asyncio
async def test_scan_failure_is_an_mcp_error(make_config, make_scanner, staging_root):
    cli = make_scanner(
        """
        import sys
        print("invalid API token", file=sys.stderr)
        sys.exit(1)
        """
    )
    mcp = server.create_server(make_config(SYMBIOTIC_CLI_PATH=cli))

    async with Client(mcp) as client:
        result = await client.call_tool(
            "infra_scan_files",
            {"code_files": [{"filename": "Dockerfile", "content": "FROM alpine"}]},
            raise_on_error=False,
        )

    assert result.is_error
    assert "Error executing infra_scan_files" in result.content[0].text
    assert "invalid API token" in result.content[0].text
    assert os.listdir(staging_root) == []


@pytest.mark.asyncio
async def test_missing_files_is_an_mcp_error(make_config, staging_root):
    mcp = server.create_server(make_config())

    async with Client(mcp) as client:
        result = await client.call_tool("security_scan_files", {}, raise_on_error=False)

    assert result.is_error
    assert "code_files must be a non-empty array" in result.content[0].text


@pytest.mark.asyncio
async def test_informational_tools(make_config):
    config = make_config(SYMBIOTIC_IS_ONLINE="true", SYMBIOTIC_API_TOKEN="very-secret")
    mcp = server.create_server(config)

    async with Client(mcp) as client:
        languages = await client.call_tool("get_supported_languages", {})
        info = await client.call_tool("get_server_info", {})

    languages_text = languages.content[0].text
    assert languages_text.startswith("✅ Supported languages:")
    assert all(language in languages_text for language in SUPPORTED_LANGUAGES)

    info_text = info.content[0].text
    assert "symbiotic-mcp-server" in info_text
    assert "API token: configured" in info_text
    assert "very-secret" not in info_text


def test_main_exits_on_missing_token(monkeypatch):
    monkeypatch.setenv("SYMBIOTIC_IS_ONLINE", "true")
    monkeypatch.delenv("SYMBIOTIC_API_TOKEN", raising=False)

    with pytest.raises(SystemExit) as exc_info:
        server.main()
    assert exc_info.value.code == 1
