"""Data models for staged files, scanner runs and findings."""

from dataclasses import dataclass
from typing import List, Literal, Optional

ScanType = Literal["code", "infra"]

SEVERITY_LABELS = {
    "1": "critical",
    "2": "high",
    "3": "medium",
    "4": "low",
}


@dataclass
class CodeFile:
    """A file submitted by the caller, staged once and then discarded."""

    filename: str  # relative path, e.g. "src/app.py"
    content: str


@dataclass
class ScanInvocationResult:
    """Outcome of exactly one scanner CLI run."""

    stdout: str
    stderr: str
    exit_code: int
    success: bool


@dataclass(frozen=True)
class FindingLocation:
    start_line: int = 0
    end_line: int = 0
    start_col: int = 0
    end_col: int = 0
    absolute_filename: str = ""
    relative_filename: str = ""


@dataclass(frozen=True)
class SecurityFinding:
    """One issue reported by the scanner."""

    rule_id: str
    title: str
    severity: str  # "1".."4", anything else renders as unknown
    description: str
    location: FindingLocation
    snippet: str = ""
    impact: str = ""
    confidence_level: str = ""
    references: tuple = ()

    @property
    def severity_label(self) -> str:
        return SEVERITY_LABELS.get(str(self.severity), "unknown")


@dataclass(frozen=True)
class SecurityResult:
    """Parsed scanner document: {fail_results, pass_results, external_results}."""

    fail_results: tuple = ()
    pass_results: tuple = ()
    external_results: tuple = ()


@dataclass
class ScanOutcome:
    """One sub-scan of a multi-scan request."""

    type: ScanType
    label: str
    result: ScanInvocationResult
    success: bool
    error: Optional[BaseException] = None


@dataclass
class ToolResponse:
    """Uniform result of a tool call; is_error marks an all-or-nothing failure."""

    text: str
    is_error: bool = False


@dataclass
class ScanSpec:
    """A sub-scan entry of a multi-scan tool: which scan to run and its label."""

    type: ScanType
    label: str


DEFAULT_COMBINED_SCANS: List[ScanSpec] = [
    ScanSpec(type="code", label="Code scan"),
    ScanSpec(type="infra", label="Infra scan"),
]

# Languages understood by the code and infra scanners
SUPPORTED_LANGUAGES: List[str] = [
    "javascript",
    "typescript",
    "python",
    "java",
    "go",
    "rust",
    "php",
    "ruby",
    "csharp",
    "cpp",
    "c",
    "swift",
    "kotlin",
    "scala",
    "dockerfile",
    "yaml",
    "json",
    "xml",
    "html",
    "css",
]
