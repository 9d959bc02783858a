"""
Network trust & diagnostics toolbox.

Shared plumbing for the inspectors: error taxonomy, configuration, input
validation, the toolbox facade and the outer surfaces (FastAPI app + CLI).
"""

from .errors import (
    DecryptionError,
    DiagnosticsError,
    EncryptionError,
    NetworkError,
    ParseError,
    ValidationError,
)

__all__ = [
    "DecryptionError",
    "DiagnosticsError",
    "EncryptionError",
    "NetworkError",
    "ParseError",
    "ValidationError",
]
