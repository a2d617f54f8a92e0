"""Core module - ERP-neutral shared infrastructure.

This module contains the observability stack (structured logging and
metrics). It is intentionally ERP-agnostic.

ERP-specific logic (Katana MRP, etc.) belongs in /connectors/.
"""

__version__ = "1.0.0"
