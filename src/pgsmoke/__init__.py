"""
pgsmoke - Disposable PostgreSQL containers for integration smoke tests
"""

__version__ = "0.1.0"

from .core import PostgresHarness
from .errors import ProbeError, ProvisioningError, SmokeError, TeardownError
from .models import ConnectionDescriptor, HarnessConfig, ProvisionedDatabase

__all__ = [
    "ConnectionDescriptor",
    "HarnessConfig",
    "PostgresHarness",
    "ProbeError",
    "ProvisionedDatabase",
    "ProvisioningError",
    "SmokeError",
    "TeardownError",
]
