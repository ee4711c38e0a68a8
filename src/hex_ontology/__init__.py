"""Hex Ontology - concept ontology and rules engine for hex wargame design."""

__version__ = "0.1.0"

from hex_ontology.ontology import OntologyStore, SchemaValidator, reconcile, validate_schema
from hex_ontology.rules import ReachabilityEngine, compute_valid_moves
from hex_ontology.session import RulesSession
from hex_ontology.storage import Project, load_project, save_project

__all__ = [
    "__version__",
    "OntologyStore",
    "SchemaValidator",
    "reconcile",
    "validate_schema",
    "ReachabilityEngine",
    "compute_valid_moves",
    "RulesSession",
    "Project",
    "load_project",
    "save_project",
]
