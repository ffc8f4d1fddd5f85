"""
Portcullis Faults - structured fault signals.

Failures in Portcullis are typed faults rather than bare exceptions:
each carries a stable code, a domain, a severity and metadata, so
callers can tell an expected authentication outcome apart from a
broken setup.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain taxonomy
- Severity: Severity levels
"""

from .core import (
    DOMAIN_DEFAULTS,
    Fault,
    FaultDomain,
    Severity,
)

__all__ = [
    "DOMAIN_DEFAULTS",
    "Fault",
    "FaultDomain",
    "Severity",
]
