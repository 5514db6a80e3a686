"""Aggregation pipeline for Vigia.

Orchestrator fans out to source adapters, merges, scores and caches.
"""

from vigia.pipeline.orchestrator import FetchReport, Orchestrator

__all__ = ["FetchReport", "Orchestrator"]
