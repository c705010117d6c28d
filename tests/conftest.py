"""Shared test fixtures for Symbiotic MCP tests."""

import sys
import tempfile
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from symbiotic_mcp.core import config as config_module
from symbiotic_mcp.core.config import ServerConfig, load_config

# A scanner that reports one critical finding for a.py, with absolute paths
# pointing into the directory it was asked to scan.
FINDING_SCANNER = """
import json
import os
import sys

target = sys.argv[3]
with open(RECORD_PATH, "a") as record:
    record.write(" ".join(sys.argv[1:]) + "\\n")

path = os.path.join(target, "a.py")
with open(path) as f:
    snippet = f.read()

print(json.dumps({
    "fail_results": [{
        "rule_id": "python.lang.security.audit.eval-detected",
        "title": "Use of eval on user input",
        "severity": "1",
        "description": "Detected eval() called on data read from " + path,
        "location": {
            "start_line": 1,
            "end_line": 1,
            "start_col": 1,
            "end_col": 14,
            "absolute_filename": path,
            "relative_filename": "a.py",
        },
        "snippet": snippet,
        "impact": "Remote code execution",
        "confidence_level": "high",
        "references": ["https://cwe.mitre.org/data/definitions/95.html"],
    }],
    "pass_results": [],
    "external_results": [],
}))
"""

CLEAN_SCANNER = """
import json
print(json.dumps({"fail_results": [], "pass_results": [], "external_results": []}))
"""


@pytest.fixture(autouse=True)
def no_user_config_file(tmp_path, monkeypatch):
    """Keep a developer's real config file out of the tests."""
    monkeypatch.setattr(config_module, "USER_CONFIG_PATH", tmp_path / "missing" / "config.yaml")
    monkeypatch.setattr(config_module, "LOCAL_CONFIG_PATH", tmp_path / "missing" / "local.yaml")
    monkeypatch.delenv(config_module.CONFIG_FILE_ENV, raising=False)


@pytest.fixture
def staging_root(tmp_path, monkeypatch) -> Path:
    """Point tempfile at a private directory so staging areas can be counted."""
    root = tmp_path / "staging"
    root.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(root))
    return root


@pytest.fixture
def make_scanner(tmp_path) -> Callable[[str], str]:
    """Write an executable Python script that stands in for the Symbiotic CLI."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    counter = {"n": 0}

    def _make(body: str) -> str:
        counter["n"] += 1
        path = bin_dir / f"symbiotic-cli-{counter['n']}"
        path.write_text(f"#!{sys.executable}\n" + textwrap.dedent(body))
        path.chmod(0o755)
        return str(path)

    return _make


@pytest.fixture
def record_path(tmp_path) -> Path:
    """File the finding scanner appends its arguments to."""
    return tmp_path / "invocations.log"


@pytest.fixture
def finding_scanner(make_scanner, record_path) -> str:
    return make_scanner(FINDING_SCANNER.replace("RECORD_PATH", repr(str(record_path))))


@pytest.fixture
def clean_scanner(make_scanner) -> str:
    return make_scanner(CLEAN_SCANNER)


@pytest.fixture
def make_config() -> Callable[..., ServerConfig]:
    """Build an offline config from keyword environment overrides."""

    def _make(**env: str) -> ServerConfig:
        environ = {"SYMBIOTIC_IS_ONLINE": "false"}
        environ.update(env)
        return load_config(environ=environ)

    return _make
