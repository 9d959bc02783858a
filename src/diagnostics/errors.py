class DiagnosticsError(Exception):
    """Base error for everything raised by the diagnostics core."""


class ValidationError(DiagnosticsError, ValueError):
    """Malformed caller input (bad nameserver IP, bad domain, bad port...)."""


class NetworkError(DiagnosticsError):
    """Connection or timeout failure that could not be folded into a result."""


class ParseError(DiagnosticsError, ValueError):
    """Malformed certificate or record data received from a peer."""


class EncryptionError(DiagnosticsError):
    """Key or cipher construction failed while encrypting."""


class DecryptionError(DiagnosticsError):
    """Invalid password or corrupted data. Deliberately carries no detail."""

    def __init__(self, message: str = "Decryption failed: invalid password or corrupted data"):
        super().__init__(message)
