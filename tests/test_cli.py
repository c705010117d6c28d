"""Tests for the Symbiotic CLI subprocess runner."""

import os
import time

import pytest

from symbiotic_mcp.core.cli import (
    TIMEOUT_EXIT_CODE,
    SymbioticCliClient,
    build_cli_environment,
    get_symbiotic_client,
)

pytestmark = pytest.mark.skipif(os.name == "nt", reason="stub scanners are shebang scripts")


@pytest.mark.asyncio
async def test_successful_run_captures_output(make_scanner):
    cli = make_scanner(
        """
        import sys
        print("out:" + " ".join(sys.argv[1:]))
        print("note", file=sys.stderr)
        """
    )
    result = await SymbioticCliClient(cli, 10000).run(["code", "scan", "/some/dir"])

    assert result.success
    assert result.exit_code == 0
    assert result.stdout == "out:code scan /some/dir"
    assert result.stderr == "note"


@pytest.mark.asyncio
async def test_code_and_infra_scan_subcommands(make_scanner):
    cli = make_scanner(
        """
        import sys
        print(" ".join(sys.argv[1:]))
        """
    )
    client = SymbioticCliClient(cli, 10000)

    assert (await client.code_scan("/d")).stdout == "code scan /d"
    assert (await client.infra_scan("/d")).stdout == "infra scan /d"
    assert (await client.scan("infra", "/e")).stdout == "infra scan /e"

    with pytest.raises(ValueError):
        await client.scan("secrets", "/d")


@pytest.mark.asyncio
async def test_nonzero_exit_is_reported(make_scanner):
    cli = make_scanner(
        """
        import sys
        print("partial")
        print("license expired", file=sys.stderr)
        sys.exit(3)
        """
    )
    result = await SymbioticCliClient(cli, 10000).run(["code", "scan", "."])

    assert not result.success
    assert result.exit_code == 3
    assert result.stdout == "partial"
    assert result.stderr == "license expired"


@pytest.mark.asyncio
async def test_missing_executable_resolves_with_exit_code_1(tmp_path):
    client = SymbioticCliClient(str(tmp_path / "does-not-exist"), 10000)
    result = await client.run(["code", "scan", "."])

    assert not result.success
    assert result.exit_code == 1
    assert result.stdout == ""
    assert "does-not-exist" in result.stderr or "No such file" in result.stderr


@pytest.mark.asyncio
async def test_non_executable_file_resolves_with_exit_code_1(tmp_path):
    script = tmp_path / "not-executable"
    script.write_text("#!/bin/sh\necho hi\n")
    script.chmod(0o644)
    if os.access(script, os.X_OK):
        pytest.skip("running with privileges that ignore the execute bit")

    result = await SymbioticCliClient(str(script), 10000).run(["code", "scan", "."])
    assert result.exit_code == 1
    assert not result.success
    assert result.stderr


@pytest.mark.asyncio
async def test_timeout_kills_process_and_keeps_partial_output(make_scanner):
    cli = make_scanner(
        """
        import sys
        import time
        print("scanning...", flush=True)
        time.sleep(30)
        print("never printed")
        """
    )
    client = SymbioticCliClient(cli, timeout_ms=500)

    started = time.monotonic()
    result = await client.run(["code", "scan", "."])
    elapsed = time.monotonic() - started

    assert result.exit_code == TIMEOUT_EXIT_CODE
    assert not result.success
    assert result.stderr == "Command timed out after 500ms"
    assert result.stdout == "scanning..."
    assert elapsed < 5


@pytest.mark.asyncio
async def test_client_exports_settings_to_cli(make_scanner, make_config):
    cli = make_scanner(
        """
        import os
        print(os.environ.get("SYMBIOTIC_IS_ONLINE"), os.environ.get("SYMBIOTIC_TARGET_API"),
              os.environ.get("SYMBIOTIC_API_TOKEN"))
        """
    )
    config = make_config(
        SYMBIOTIC_CLI_PATH=cli,
        SYMBIOTIC_IS_ONLINE="true",
        SYMBIOTIC_API_TOKEN="tok-123",
        SYMBIOTIC_TARGET_API="https://scanner.example.com",
        SYMBIOTIC_PROCESS_TIMEOUT="20000",
    )
    client = get_symbiotic_client(config)

    assert client.cli_path == cli
    assert client.timeout_ms == 20000
    result = await client.run([])
    assert result.stdout == "true https://scanner.example.com tok-123"


def test_environment_omits_missing_token(make_config, monkeypatch):
    monkeypatch.delenv("SYMBIOTIC_API_TOKEN", raising=False)
    monkeypatch.setenv("INHERITED_VARIABLE", "kept")
    env = build_cli_environment(make_config())

    assert env["SYMBIOTIC_IS_ONLINE"] == "false"
    assert "SYMBIOTIC_API_TOKEN" not in env
    assert env["INHERITED_VARIABLE"] == "kept"
