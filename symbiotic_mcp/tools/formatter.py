"""
Formatting of Symbiotic CLI results for display.

- parse_findings(): Parse the CLI's JSON document into SecurityResult
- strip_staging_prefix(): Make temp-directory paths read as submission-relative
- format_findings(): Render findings grouped by file as a markdown report
- format_security_results(): parse + format, falling back to the raw text
"""

import json
import logging
import os
from typing import Dict, List

from symbiotic_mcp.core.errors import MalformedOutputError
from symbiotic_mcp.core.models import FindingLocation, SecurityFinding, SecurityResult

logger = logging.getLogger(__name__)

NO_ISSUES_MESSAGE = "✅ No security issues found"

SEVERITY_GLYPHS = {
    "critical": "🔴",
    "high": "🔴",
    "medium": "🟠",
    "low": "🟡",
    "unknown": "⚪",
}

# Fence language for the vulnerable-code block, by file extension
SNIPPET_LANGUAGES = {
    ".py": "python",
    ".js": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".java": "java",
    ".go": "go",
    ".rs": "rust",
    ".php": "php",
    ".rb": "ruby",
    ".cs": "csharp",
    ".c": "c",
    ".h": "c",
    ".cpp": "cpp",
    ".swift": "swift",
    ".kt": "kotlin",
    ".scala": "scala",
    ".tf": "hcl",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".xml": "xml",
    ".html": "html",
    ".css": "css",
    ".sh": "bash",
}


def _as_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _as_text(value) -> str:
    return "" if value is None else str(value)


def _malformed(raw_stdout: str, reason: str = "") -> MalformedOutputError:
    detail = f" ({reason})" if reason else ""
    return MalformedOutputError(
        f"Failed to parse Symbiotic CLI response{detail}: {raw_stdout}", raw=raw_stdout or ""
    )


def _list_field(data: dict, key: str, raw_stdout: str) -> list:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise _malformed(raw_stdout, f"{key} must be a list")
    return value


def _parse_finding(raw: dict, raw_stdout: str) -> SecurityFinding:
    location = raw.get("location") or {}
    if not isinstance(location, dict):
        location = {}

    references = raw.get("references") or []
    if isinstance(references, str):
        references = [references]
    elif not isinstance(references, list):
        raise _malformed(raw_stdout, "references must be a list or a string")

    return SecurityFinding(
        rule_id=_as_text(raw.get("rule_id")),
        title=_as_text(raw.get("title")),
        severity=_as_text(raw.get("severity")),
        description=_as_text(raw.get("description")),
        location=FindingLocation(
            start_line=_as_int(location.get("start_line")),
            end_line=_as_int(location.get("end_line")),
            start_col=_as_int(location.get("start_col")),
            end_col=_as_int(location.get("end_col")),
            absolute_filename=_as_text(location.get("absolute_filename")),
            relative_filename=_as_text(location.get("relative_filename")),
        ),
        snippet=_as_text(raw.get("snippet")),
        impact=_as_text(raw.get("impact")),
        confidence_level=_as_text(raw.get("confidence_level")),
        references=tuple(_as_text(r) for r in references),
    )


def parse_findings(raw_stdout: str) -> SecurityResult:
    """
    Parse the CLI's stdout.

    Raises:
        MalformedOutputError: If stdout is not a JSON object, or one of its
            result lists has the wrong shape
    """
    try:
        data = json.loads(raw_stdout)
    except (TypeError, ValueError) as e:
        raise _malformed(raw_stdout) from e

    if not isinstance(data, dict):
        raise _malformed(raw_stdout)

    fail_results = _list_field(data, "fail_results", raw_stdout)
    return SecurityResult(
        fail_results=tuple(
            _parse_finding(f, raw_stdout) for f in fail_results if isinstance(f, dict)
        ),
        pass_results=tuple(_list_field(data, "pass_results", raw_stdout)),
        external_results=tuple(_list_field(data, "external_results", raw_stdout)),
    )


def strip_staging_prefix(text: str, staging_root: str) -> str:
    """Remove every occurrence of the staging root from text."""
    if not staging_root:
        return text
    root = staging_root.rstrip("/\\") or staging_root
    return text.replace(root + "/", "").replace(root + os.sep, "").replace(root, ".")


def _line_descriptor(location: FindingLocation) -> str:
    if location.start_line == location.end_line or not location.end_line:
        return f"Line {location.start_line}"
    return f"Lines {location.start_line}-{location.end_line}"


def _snippet_language(filename: str) -> str:
    _, ext = os.path.splitext(filename.lower())
    return SNIPPET_LANGUAGES.get(ext, "")


def _format_issue(issue: SecurityFinding) -> List[str]:
    label = issue.severity_label
    severity = f"{SEVERITY_GLYPHS[label]} {label.upper()}"
    location = issue.location

    output = []
    output.append("")
    output.append(f"{severity} **{issue.title}**")
    output.append(f"Rule: {issue.rule_id} | {_line_descriptor(location)}")
    output.append(issue.description)
    output.append("")

    if issue.snippet:
        output.append("**📋 Vulnerable Code:**")
        output.append(f"```{_snippet_language(location.relative_filename)}")
        for offset, line in enumerate(issue.snippet.split("\n")):
            output.append(f"{location.start_line + offset}: {line}")
        output.append("```")
        output.append("")

    if issue.impact:
        output.append(f"💥 **Impact**: {issue.impact}")
        output.append("")

    if issue.references:
        output.append(f"🔗 **References**: {', '.join(issue.references)}")
        output.append("")

    return output


def format_findings(parsed: SecurityResult, scan_label: str) -> str:
    """
    Render findings grouped by file.

    Args:
        parsed: Parsed CLI document
        scan_label: Scan name shown in the header (e.g., "code", "infra")

    Returns:
        Markdown report, or the fixed no-issues message
    """
    if not parsed.fail_results:
        return NO_ISSUES_MESSAGE

    output = []
    output.append(f"🔍 **{scan_label.upper()} SCAN RESULTS**")
    output.append("")
    output.append(f"Found {len(parsed.fail_results)} security issues:")
    output.append("")

    # dicts keep insertion order, so files appear in first-seen order
    grouped: Dict[str, List[SecurityFinding]] = {}
    for issue in parsed.fail_results:
        grouped.setdefault(issue.location.relative_filename, []).append(issue)

    for filename, issues in grouped.items():
        output.append(f"📁 **{filename}**")
        for i, issue in enumerate(issues):
            output.extend(_format_issue(issue))
            if i < len(issues) - 1:
                output.append("---")
                output.append("")
        output.append("")

    return "\n".join(output)


def format_security_results(results: str, scan_label: str) -> str:
    """Parse and format CLI output; unparsable output is returned as-is."""
    try:
        parsed = parse_findings(results)
    except MalformedOutputError:
        logger.debug(f"{scan_label} output is not JSON, showing raw text")
        return results
    return format_findings(parsed, scan_label)
