"""Conversion of column metadata into attributes."""

from typing import Iterable, Tuple

from ..datasources.base import ColumnMetadata
from .model import Attribute


class AttributeMapper:
    """Maps result column metadata one-to-one onto attributes."""

    @staticmethod
    def map_column(column: ColumnMetadata) -> Attribute:
        return Attribute(
            name=column.name,
            ordinal_position=column.ordinal,
            type_name=column.type_name,
            full_type_name=column.full_type_name or column.type_name,
            type_code=column.type_code,
            data_kind=column.data_kind,
            scale=column.scale,
            precision=column.precision,
            max_length=column.max_length,
            type_modifiers=column.type_modifiers,
        )

    @classmethod
    def map(cls, metadata: Iterable[ColumnMetadata]) -> Tuple[Attribute, ...]:
        """Map columns in source order, without reordering or filtering.

        Args:
            metadata: Column metadata of a probe result or user table

        Returns:
            Attributes in the same order
        """
        attributes = []
        for column in metadata:
            attributes.append(cls.map_column(column))
        return tuple(attributes)
