"""Catalog object model, system object discovery and the catalog facade."""

from .model import Attribute, ChildType, EntityContainer, PseudoAttribute, SchemaEntity
from .mapper import AttributeMapper
from .registry import CandidateRegistry
from .pseudo import (
    NoPseudoAttributes,
    PseudoAttributeCache,
    PseudoAttributeProvider,
    PseudoAttributeResolver,
    RowIdPseudoAttributeProvider,
)
from .system import CatalogContainer, CatalogObject
from .schema import Schema, Table
from .catalog import Catalog

__all__ = [
    "Attribute",
    "AttributeMapper",
    "CandidateRegistry",
    "Catalog",
    "CatalogContainer",
    "CatalogObject",
    "ChildType",
    "EntityContainer",
    "NoPseudoAttributes",
    "PseudoAttribute",
    "PseudoAttributeCache",
    "PseudoAttributeProvider",
    "PseudoAttributeResolver",
    "RowIdPseudoAttributeProvider",
    "Schema",
    "SchemaEntity",
    "Table",
]
