"""
Core pipeline for Symbiotic MCP.

- config.py - Settings from defaults, YAML file and environment
- errors.py - Exception types
- models.py - Data models (CodeFile, ScanInvocationResult, SecurityFinding, ...)
- paths.py - Path sandbox and scan-target resolution
- staging.py - Temporary staging areas for submitted files
- cli.py - Symbiotic CLI subprocess runner
"""
