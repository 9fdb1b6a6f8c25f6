"""User schema and table metadata classes."""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .model import Attribute, ChildType, EntityContainer, PseudoAttribute, SchemaEntity
from .pseudo import PseudoAttributeCache, PseudoAttributeResolver


@dataclass(eq=False)
class Table(SchemaEntity):
    """User table metadata."""

    name: str
    attributes: Tuple[Attribute, ...] = ()
    schema_name: Optional[str] = None
    datasource: Optional[str] = None
    resolver: Optional[PseudoAttributeResolver] = field(default=None, repr=False)
    _pseudo_cache: PseudoAttributeCache = field(default_factory=PseudoAttributeCache, init=False, repr=False)

    def __post_init__(self):
        self.attributes = tuple(self.attributes)
        if self.resolver is None:
            self.resolver = PseudoAttributeResolver()

    def get_name(self) -> str:
        return self.name

    def get_attributes(self) -> Tuple[Attribute, ...]:
        return self.attributes

    def relation_name(self) -> str:
        if self.schema_name:
            return f"{self.schema_name}.{self.name}"
        return self.name

    def get_column(self, name: str) -> Optional[Attribute]:
        """Get column by name."""
        return self.get_attribute(name)

    def get_all_pseudo_attributes(self) -> Tuple[PseudoAttribute, ...]:
        computed = self._pseudo_cache.get_or_compute(lambda: self.resolver.resolve(self))
        return self.get_pseudo_attributes() + computed

    def fully_qualified_name(self) -> str:
        """Get fully qualified table name."""
        if self.schema_name:
            return f"{self.datasource}.{self.schema_name}.{self.name}"
        return self.name

    def __repr__(self) -> str:
        return f"Table({self.name}, cols={len(self.attributes)})"


@dataclass
class Schema(EntityContainer):
    """User schema metadata."""

    name: str
    datasource: str
    tables: Dict[str, Table] = field(default_factory=dict)

    def get_name(self) -> str:
        return self.name

    def get_children(self) -> Tuple[Table, ...]:
        return tuple(self.tables.values())

    def get_child(self, name: str) -> Optional[Table]:
        return self.get_table(name)

    def get_primary_child_type(self) -> ChildType:
        return ChildType.TABLE

    def get_table(self, name: str) -> Optional[Table]:
        """Get table by name."""
        return self.tables.get(name.lower())

    def add_table(self, table: Table) -> None:
        """Add a table to this schema."""
        table.schema_name = self.name
        table.datasource = self.datasource
        self.tables[table.name.lower()] = table

    def __repr__(self) -> str:
        return f"Schema({self.datasource}.{self.name}, tables={len(self.tables)})"
