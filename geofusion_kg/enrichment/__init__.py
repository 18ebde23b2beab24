"""
Enrichment Pipeline

Per-record steps and the batch orchestrator that drives them.

Modules:
    relationships: RelationshipSynthesizer (record -> record edges)
    knowledge: KnowledgeGraphBuilder (semantic triples)
    fusion: PropertyFusionEngine (fused per-record views)
    insights: InsightGenerator (optional LLM summary)
    orchestrator: BatchOrchestrator (fetch -> process -> summarize)

Example:
    >>> from geofusion_kg.enrichment import BatchOrchestrator
    >>> orchestrator = BatchOrchestrator(storage, config)
    >>> response = await orchestrator.run(BatchRequest(limit=50))
"""

from geofusion_kg.enrichment.fusion import PropertyFusionEngine
from geofusion_kg.enrichment.insights import InsightGenerator
from geofusion_kg.enrichment.knowledge import KnowledgeGraphBuilder
from geofusion_kg.enrichment.orchestrator import BatchOrchestrator
from geofusion_kg.enrichment.relationships import RelationshipSynthesizer

__all__ = [
    "BatchOrchestrator",
    "RelationshipSynthesizer",
    "KnowledgeGraphBuilder",
    "PropertyFusionEngine",
    "InsightGenerator",
]
