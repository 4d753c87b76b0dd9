"""Graphwright: staged ingestion into a rights-aware knowledge graph."""
