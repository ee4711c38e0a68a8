"""
Ontology Module

Stores concepts, bindings, relations and constraints, keeps auto-generated
budget constraints in sync with the relations they come from, and validates
the whole schema against the entity-type registry.
"""

from .store import OntologyStore, StoreSnapshot
from .autogen import ReconcileReport, reconcile, reconcile_all, orphaned_auto_constraints
from .validator import SchemaValidator, validate_schema

__all__ = [
    "OntologyStore",
    "StoreSnapshot",
    "ReconcileReport",
    "reconcile",
    "reconcile_all",
    "orphaned_auto_constraints",
    "SchemaValidator",
    "validate_schema",
]
