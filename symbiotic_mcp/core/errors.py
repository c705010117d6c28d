"""Exception types raised by the scan pipeline."""


class SymbioticMCPError(Exception):
    """Base class for every error raised by Symbiotic MCP."""


class InvalidInputError(SymbioticMCPError):
    """The caller-supplied file list is empty or malformed."""


class PathTraversalError(SymbioticMCPError):
    """An untrusted path tried to escape its sandbox directory."""


class InvalidPathError(SymbioticMCPError):
    """A path expected to be absolute and normalized is not."""


class StagingWriteError(SymbioticMCPError):
    """Writing a file into the staging area failed."""

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"Failed to create or write file {filename}: {reason}")


class ExternalProcessError(SymbioticMCPError):
    """The scanner CLI exited with a non-zero code or could not be spawned."""

    def __init__(self, message: str, exit_code: int = 1):
        self.exit_code = exit_code
        super().__init__(message)


class MalformedOutputError(SymbioticMCPError):
    """The scanner CLI printed something that is not a JSON document."""

    def __init__(self, message: str, raw: str = ""):
        self.raw = raw
        super().__init__(message)


class ConfigurationError(SymbioticMCPError):
    """Required settings are missing or invalid at startup."""
