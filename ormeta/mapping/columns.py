# ==============================================
# Column & Table Descriptors
# ==============================================
#
# PURPOSE:
#   Small data classes that describe storage details: tables,
#   join columns, join tables, discriminator columns, value
#   generators and second-level cache settings.
#
# CLASSES:
# --------
# - TableMetadata (dataclass)            → name, schema
# - JoinColumnMetadata (dataclass)       → column of a to-one association
# - JoinTableMetadata (dataclass)        → link table of a many-to-many
# - DiscriminatorColumnMetadata (dataclass)
# - ValueGenerator (dataclass)           → IDENTITY, SEQUENCE, ...
# - CacheMetadata (dataclass)            → usage, region
#
#   All of them provide:
#   - to_dict() -> dict
#   - from_dict(data: dict)  (classmethod)
#
# ==============================================

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class TableMetadata:
    """The table an entity is stored in."""
    name: str
    schema: Optional[str] = None

    def get_name(self) -> str:
        return self.name

    def get_schema(self) -> Optional[str]:
        return self.schema

    def get_quoted_qualified_name(self) -> str:
        if self.schema:
            return f"{self.schema}.{self.name}"
        return self.name

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "schema": self.schema}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TableMetadata":
        return cls(name=data["name"], schema=data.get("schema"))


@dataclass
class JoinColumnMetadata:
    """
    A foreign-key column owned by a to-one association.

    table_name is left empty until the owning class gets its table
    assigned (see ClassMetadata.set_table).
    """
    column_name: str
    referenced_column_name: str = "id"
    table_name: Optional[str] = None
    type_name: Optional[str] = None
    nullable: bool = True
    unique: bool = False
    on_delete: Optional[str] = None

    def get_column_name(self) -> str:
        return self.column_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column_name": self.column_name,
            "referenced_column_name": self.referenced_column_name,
            "table_name": self.table_name,
            "type_name": self.type_name,
            "nullable": self.nullable,
            "unique": self.unique,
            "on_delete": self.on_delete,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JoinColumnMetadata":
        return cls(
            column_name=data["column_name"],
            referenced_column_name=data.get("referenced_column_name", "id"),
            table_name=data.get("table_name"),
            type_name=data.get("type_name"),
            nullable=data.get("nullable", True),
            unique=data.get("unique", False),
            on_delete=data.get("on_delete"),
        )


@dataclass
class JoinTableMetadata:
    name: str
    schema: Optional[str] = None
    join_columns: List[JoinColumnMetadata] = field(default_factory=list)
    inverse_join_columns: List[JoinColumnMetadata] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "schema": self.schema,
            "join_columns": [c.to_dict() for c in self.join_columns],
            "inverse_join_columns": [c.to_dict() for c in self.inverse_join_columns],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JoinTableMetadata":
        return cls(
            name=data["name"],
            schema=data.get("schema"),
            join_columns=[JoinColumnMetadata.from_dict(c) for c in data.get("join_columns", [])],
            inverse_join_columns=[
                JoinColumnMetadata.from_dict(c) for c in data.get("inverse_join_columns", [])
            ],
        )


@dataclass
class DiscriminatorColumnMetadata:
    """Column holding the discriminator value under SINGLE_TABLE / JOINED."""
    column_name: str = "dtype"
    type_name: str = "string"
    length: Optional[int] = 255
    table_name: Optional[str] = None
    column_definition: Optional[str] = None

    def get_column_name(self) -> str:
        return self.column_name

    def get_type_name(self) -> str:
        return self.type_name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "column_name": self.column_name,
            "type_name": self.type_name,
            "length": self.length,
            "table_name": self.table_name,
            "column_definition": self.column_definition,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DiscriminatorColumnMetadata":
        return cls(
            column_name=data.get("column_name", "dtype"),
            type_name=data.get("type_name", "string"),
            length=data.get("length", 255),
            table_name=data.get("table_name"),
            column_definition=data.get("column_definition"),
        )


@dataclass
class ValueGenerator:
    """How an identifier value is produced on insert (IDENTITY, SEQUENCE, CUSTOM...)."""
    type: str
    definition: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "definition": dict(self.definition)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValueGenerator":
        return cls(type=data["type"], definition=dict(data.get("definition") or {}))


@dataclass
class CacheMetadata:
    usage: str = "READ_ONLY"
    region: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"usage": self.usage, "region": self.region}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheMetadata":
        return cls(usage=data.get("usage", "READ_ONLY"), region=data.get("region"))
