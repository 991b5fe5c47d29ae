"""
Regional Franchise Platform - API Routers
"""

from franchise.routers import (
    licensees,
    territories,
    consultants,
    jobs,
    revenue,
    settlements,
    audit_logs,
)

__all__ = [
    "licensees",
    "territories",
    "consultants",
    "jobs",
    "revenue",
    "settlements",
    "audit_logs",
]
