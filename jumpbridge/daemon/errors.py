"""Exception types shared across the bridge."""

from typing import Optional, Sequence


class BridgeError(Exception):
    """Base class for jumpbridge errors."""


class ConfigurationError(BridgeError):
    """Raised when configuration values cannot be used."""


class StoreError(BridgeError):
    """
    Raised when a call to the jumper executable fails.

    Only the store client raises this; dispatchers catch it and degrade
    to an empty result or a failed outcome.
    """

    def __init__(self,
                 message: str,
                 args: Optional[Sequence[str]] = None,
                 returncode: Optional[int] = None,
                 stderr: str = ""):
        super().__init__(message)
        self.command = list(args or [])
        self.returncode = returncode
        self.stderr = stderr
