"""Domain errors for pgsmoke."""


class SmokeError(RuntimeError):
    """Raised when the disposable database lifecycle cannot continue."""


class ProvisioningError(SmokeError):
    """Raised when the container cannot be pulled, created, started or reached."""

    def __init__(self, message: str, handle=None):
        super().__init__(message)
        self.handle = handle


class ProbeError(SmokeError):
    """Raised when the connectivity probe fails."""


class TeardownError(SmokeError):
    """Raised when a container cannot be stopped or removed."""
