"""Chart scanning, CRD version bookkeeping, RBAC generation and API discovery helpers."""

__version__ = "0.1.0"