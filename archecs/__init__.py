"""Archetype-based entity-component storage: ids, archetypes, bundles, batches and borrows."""

__version__ = "0.1.0"

__all__ = [
    "archetype",
    "batch",
    "borrow",
    "bundle",
    "entities",
    "entity",
    "entity_ref",
]