"""Legal Records Registry - permissioned registry of legal document attestations."""

__version__ = "1.0.0"
