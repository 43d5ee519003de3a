# API Routers - Legal Records Registry

from legal_registry.routers import chain, deps, health, legal_records

__all__ = ["chain", "deps", "health", "legal_records"]
