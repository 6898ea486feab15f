"""
Per-entry enrichment.
"""

from .coordinator import EnrichmentCoordinator

__all__ = ['EnrichmentCoordinator']
