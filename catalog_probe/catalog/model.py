"""Read-only schema object contract shared by user and system objects."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Tuple

from ..types import DataKind, TypeModifier


class ChildType(Enum):
    """Kind of children an entity container holds."""

    SCHEMA = "schema"
    TABLE = "table"
    SYSTEM_TABLE = "system_table"


@dataclass(frozen=True)
class Attribute:
    """Column of a schema entity."""

    name: str
    ordinal_position: int
    type_name: str = ""
    full_type_name: str = ""
    type_code: int = 0
    data_kind: DataKind = DataKind.UNKNOWN
    scale: Optional[int] = None
    precision: Optional[int] = None
    max_length: int = 0
    type_modifiers: TypeModifier = TypeModifier.NONE

    @property
    def required(self) -> bool:
        return bool(self.type_modifiers & TypeModifier.NOT_NULL)

    @property
    def nullable(self) -> bool:
        return not self.required

    def __repr__(self) -> str:
        return f"Attribute({self.name}, {self.full_type_name or self.type_name})"


@dataclass(frozen=True)
class PseudoAttribute:
    """Engine-intrinsic column not present in declared metadata (e.g. rowid)."""

    name: str
    type_name: str
    data_kind: DataKind = DataKind.ROWID
    description: str = ""


class SchemaEntity(ABC):
    """Table-like object: named, with an ordered attribute list."""

    @abstractmethod
    def get_name(self) -> str:
        pass

    @abstractmethod
    def get_attributes(self) -> Tuple[Attribute, ...]:
        pass

    def relation_name(self) -> str:
        """Name to use for this entity in a FROM clause."""
        return self.get_name()

    def get_attribute(self, name: str) -> Optional[Attribute]:
        """Get attribute by name (case-insensitive)."""
        lowered = name.lower()
        for attribute in self.get_attributes():
            if attribute.name.lower() == lowered:
                return attribute
        return None

    def get_indexes(self) -> Tuple:
        return ()

    def get_constraints(self) -> Tuple:
        return ()

    def get_triggers(self) -> Tuple:
        return ()

    def get_associations(self) -> Tuple:
        return ()

    def get_references(self) -> Tuple:
        return ()

    def is_view(self) -> bool:
        return False

    def get_pseudo_attributes(self) -> Tuple[PseudoAttribute, ...]:
        """Declared pseudo attributes; none unless the entity declares some."""
        return ()

    def get_all_pseudo_attributes(self) -> Tuple[PseudoAttribute, ...]:
        """Declared plus engine-computed pseudo attributes."""
        return self.get_pseudo_attributes()


class EntityContainer(ABC):
    """Named collection of schema entities or nested containers."""

    @abstractmethod
    def get_name(self) -> str:
        pass

    @abstractmethod
    def get_children(self) -> Sequence:
        pass

    @abstractmethod
    def get_child(self, name: str):
        """Look a child up by name; returns None when it does not exist."""
        pass

    @abstractmethod
    def get_primary_child_type(self) -> ChildType:
        pass
