"""
Table schema definitions.

A TableSchema is declared once per table when the client is built and never
changes afterwards. It maps attribute names to their wire type tags and names
the key attributes every single-item operation needs.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..exceptions import UnknownAttributeError


class AttributeType(str, Enum):
    """Wire type tags of the store."""
    STRING = "S"
    NUMBER = "N"
    STRING_SET = "SS"
    NUMBER_SET = "NS"
    BINARY = "B"

    @property
    def is_set(self) -> bool:
        return self in (AttributeType.STRING_SET, AttributeType.NUMBER_SET)

    @property
    def element_type(self) -> 'AttributeType':
        """Scalar type of the elements of a set type (the type itself otherwise)."""
        if self is AttributeType.STRING_SET:
            return AttributeType.STRING
        if self is AttributeType.NUMBER_SET:
            return AttributeType.NUMBER
        return self


# Attributes missing from a schema are treated as strings when encoding.
# This leniency is kept on purpose for compatibility with loosely declared
# tables; operations still validate attribute names where they require it.
DEFAULT_ATTRIBUTE_TYPE = AttributeType.STRING


class TableSchema(BaseModel):
    """Immutable key/attribute schema of one table."""

    name: str = Field(..., min_length=1, description="Table name without namespace")
    hash_key: str = Field(..., min_length=1, description="Name of the hash key attribute")
    range_key: Optional[str] = Field(default=None, description="Name of the range key attribute")
    attributes: Dict[str, AttributeType] = Field(..., description="Attribute name -> type tag")

    model_config = ConfigDict(frozen=True)

    @model_validator(mode='after')
    def validate_keys_declared(self) -> 'TableSchema':
        if self.hash_key not in self.attributes:
            raise ValueError(f"Hash key '{self.hash_key}' of table '{self.name}' is not a declared attribute")
        if self.range_key is not None and self.range_key not in self.attributes:
            raise ValueError(f"Range key '{self.range_key}' of table '{self.name}' is not a declared attribute")
        return self

    @classmethod
    def from_definition(cls, name: str, definition: Mapping[str, Any]) -> 'TableSchema':
        """Build a schema from a plain ``{hash_key, range_key, attributes}`` mapping."""
        return cls(
            name=name,
            hash_key=definition.get('hash_key'),
            range_key=definition.get('range_key'),
            attributes=definition.get('attributes') or {},
        )

    @property
    def key_names(self) -> List[str]:
        return [self.hash_key] + ([self.range_key] if self.range_key else [])

    def is_key(self, attribute: str) -> bool:
        return attribute in self.key_names

    def attribute_type(self, attribute: str) -> AttributeType:
        """Declared type of an attribute, falling back to ``S`` for unknown names."""
        return self.attributes.get(attribute, DEFAULT_ATTRIBUTE_TYPE)

    def check_attributes(self, attributes: Iterable[str], operation: Optional[str] = None) -> List[str]:
        """Return the attribute names, raising if any is not declared.

        Raises:
            UnknownAttributeError: If a name is missing from the schema
        """
        names = list(attributes)
        invalid = [name for name in names if name not in self.attributes]
        if invalid:
            raise UnknownAttributeError(self.name, invalid, operation)
        return names
