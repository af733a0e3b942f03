# ==============================================
# Property Model
# ==============================================
#
# PURPOSE:
#   Describes one mapped attribute of an entity: a plain field,
#   a to-one or to-many association, or a transient attribute
#   that is never persisted.
#
# VARIANTS (closed set, tagged by PropertyKind):
# ----------------------------------------------
#   Property
#   ├── FieldMetadata                 kind = FIELD
#   ├── AssociationMetadata
#   │   ├── ToOneAssociationMetadata  kind = TO_ONE
#   │   │   ├── ManyToOneAssociationMetadata
#   │   │   └── OneToOneAssociationMetadata
#   │   └── ToManyAssociationMetadata kind = TO_MANY
#   │       ├── OneToManyAssociationMetadata
#   │       └── ManyToManyAssociationMetadata
#   └── TransientMetadata             kind = TRANSIENT
#
# DECLARING CLASS:
# ----------------
#   Each property keeps a weak back-reference to the metadata that
#   introduced it. The reference never owns the metadata: the
#   MetadataRegistry does.
#
# FREEZE:
# -------
#   ClassMetadata.finalize() freezes every property it holds. A frozen
#   property rejects its setters with MetadataFrozenError; copy()
#   returns a mutable duplicate.
#
# ENTITY ACCESS:
# --------------
#   get_value(entity) / set_value(entity, value) read and write the
#   attribute of the same name on a live entity instance.
#
# ==============================================

import copy
import weakref
from typing import Any, Dict, List, Optional

from .columns import JoinColumnMetadata, JoinTableMetadata, ValueGenerator
from .enums import FetchMode, PropertyKind
from .exceptions import MetadataFrozenError


class Property:
    """Base class of every mapped attribute."""

    kind: PropertyKind
    type_key: str = ""

    def __init__(self, name: str, primary_key: bool = False):
        self.name = name
        self.primary_key = primary_key
        self._declaring_class: Optional[weakref.ref] = None
        self._frozen = False

    # --- identity ---
    def get_name(self) -> str:
        return self.name

    def is_primary_key(self) -> bool:
        return self.primary_key

    def set_primary_key(self, primary_key: bool) -> None:
        self._check_mutable("set_primary_key")
        self.primary_key = primary_key

    @property
    def declaring_class(self):
        """The ComponentMetadata that introduced this property, or None."""
        if self._declaring_class is None:
            return None
        return self._declaring_class()

    def set_declaring_class(self, metadata) -> None:
        self._check_mutable("set_declaring_class")
        self._declaring_class = weakref.ref(metadata) if metadata is not None else None

    def get_declaring_class(self):
        return self.declaring_class

    @property
    def declaring_class_name(self) -> Optional[str]:
        declaring = self.declaring_class
        return declaring.class_name if declaring is not None else None

    # --- entity access ---
    def get_value(self, entity: Any) -> Any:
        return getattr(entity, self.name, None)

    def set_value(self, entity: Any, value: Any) -> None:
        setattr(entity, self.name, value)

    # --- freeze ---
    @property
    def is_frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """Make storage attributes read-only; done when the owning class is finalized."""
        self._frozen = True

    def _check_mutable(self, operation: str) -> None:
        if self._frozen:
            raise MetadataFrozenError(self.declaring_class_name or self.name, operation)

    def copy(self) -> "Property":
        """Deep copy; the declaring-class back-reference is kept as is. The copy is mutable."""
        duplicate = copy.deepcopy(self)
        duplicate._frozen = False
        return duplicate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type_key,
            "name": self.name,
            "primary_key": self.primary_key,
            "declaring_class": self.declaring_class_name,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.declaring_class_name}::{self.name}>"


class FieldMetadata(Property):
    """A scalar attribute stored in one column."""

    kind = PropertyKind.FIELD
    type_key = "field"

    def __init__(
        self,
        name: str,
        type_name: str = "string",
        column_name: Optional[str] = None,
        table_name: Optional[str] = None,
        primary_key: bool = False,
        versioned: bool = False,
        nullable: bool = False,
        unique: bool = False,
        length: Optional[int] = None,
        value_generator: Optional[ValueGenerator] = None,
    ):
        super().__init__(name, primary_key)
        self.type_name = type_name
        self.column_name = column_name or name
        self.table_name = table_name
        self.versioned = versioned
        self.nullable = nullable
        self.unique = unique
        self.length = length
        self.value_generator = value_generator

    def get_column_name(self) -> str:
        return self.column_name

    def get_table_name(self) -> Optional[str]:
        return self.table_name

    def set_table_name(self, table_name: Optional[str]) -> None:
        self._check_mutable("set_table_name")
        self.table_name = table_name

    def get_type_name(self) -> str:
        return self.type_name

    def is_versioned(self) -> bool:
        return self.versioned

    def has_value_generator(self) -> bool:
        return self.value_generator is not None

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "type_name": self.type_name,
            "column_name": self.column_name,
            "table_name": self.table_name,
            "versioned": self.versioned,
            "nullable": self.nullable,
            "unique": self.unique,
            "length": self.length,
            "value_generator": self.value_generator.to_dict() if self.value_generator else None,
        })
        return data


class AssociationMetadata(Property):
    """Common part of to-one and to-many associations."""

    def __init__(
        self,
        name: str,
        target_entity: str,
        primary_key: bool = False,
        mapped_by: Optional[str] = None,
        inversed_by: Optional[str] = None,
        fetch_mode: FetchMode = FetchMode.LAZY,
        cascade: Optional[List[str]] = None,
        source_entity: Optional[str] = None,
    ):
        super().__init__(name, primary_key)
        self.target_entity = target_entity
        self.source_entity = source_entity
        self.mapped_by = mapped_by
        self.inversed_by = inversed_by
        self.fetch_mode = fetch_mode
        self.cascade = list(cascade or [])

    def get_target_entity(self) -> str:
        return self.target_entity

    def set_source_entity(self, source_entity: str) -> None:
        self._check_mutable("set_source_entity")
        self.source_entity = source_entity

    def is_owning_side(self) -> bool:
        return self.mapped_by is None

    def get_mapped_by(self) -> Optional[str]:
        return self.mapped_by

    def get_inversed_by(self) -> Optional[str]:
        return self.inversed_by

    def set_inversed_by(self, inversed_by: Optional[str]) -> None:
        self._check_mutable("set_inversed_by")
        self.inversed_by = inversed_by

    def get_fetch_mode(self) -> FetchMode:
        return self.fetch_mode

    def set_fetch_mode(self, fetch_mode: FetchMode) -> None:
        self._check_mutable("set_fetch_mode")
        self.fetch_mode = fetch_mode

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "target_entity": self.target_entity,
            "source_entity": self.source_entity,
            "mapped_by": self.mapped_by,
            "inversed_by": self.inversed_by,
            "fetch_mode": self.fetch_mode.value,
            "cascade": list(self.cascade),
        })
        return data


class ToOneAssociationMetadata(AssociationMetadata):
    kind = PropertyKind.TO_ONE

    def __init__(self, name: str, target_entity: str,
                 join_columns: Optional[List[JoinColumnMetadata]] = None, **kwargs):
        super().__init__(name, target_entity, **kwargs)
        self.join_columns: List[JoinColumnMetadata] = list(join_columns or [])

    def get_join_columns(self) -> List[JoinColumnMetadata]:
        return self.join_columns

    def set_join_columns(self, join_columns: List[JoinColumnMetadata]) -> None:
        self._check_mutable("set_join_columns")
        self.join_columns = list(join_columns)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["join_columns"] = [c.to_dict() for c in self.join_columns]
        return data


class ManyToOneAssociationMetadata(ToOneAssociationMetadata):
    type_key = "many_to_one"


class OneToOneAssociationMetadata(ToOneAssociationMetadata):
    type_key = "one_to_one"


class ToManyAssociationMetadata(AssociationMetadata):
    kind = PropertyKind.TO_MANY

    def __init__(self, name: str, target_entity: str,
                 join_table: Optional[JoinTableMetadata] = None,
                 index_by: Optional[str] = None, **kwargs):
        super().__init__(name, target_entity, **kwargs)
        self.join_table = join_table
        self.index_by = index_by

    def get_join_table(self) -> Optional[JoinTableMetadata]:
        return self.join_table

    def set_join_table(self, join_table: Optional[JoinTableMetadata]) -> None:
        self._check_mutable("set_join_table")
        self.join_table = join_table

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["join_table"] = self.join_table.to_dict() if self.join_table else None
        data["index_by"] = self.index_by
        return data


class OneToManyAssociationMetadata(ToManyAssociationMetadata):
    type_key = "one_to_many"

    def is_owning_side(self) -> bool:
        # The many side always owns the foreign key.
        return False


class ManyToManyAssociationMetadata(ToManyAssociationMetadata):
    type_key = "many_to_many"


class TransientMetadata(Property):
    """An attribute the mapping knows about but never persists."""

    kind = PropertyKind.TRANSIENT
    type_key = "transient"


PROPERTY_TYPES = {
    cls.type_key: cls
    for cls in (
        FieldMetadata,
        ManyToOneAssociationMetadata,
        OneToOneAssociationMetadata,
        OneToManyAssociationMetadata,
        ManyToManyAssociationMetadata,
        TransientMetadata,
    )
}


def property_from_dict(data: Dict[str, Any]) -> Property:
    """
    Rebuild a property from Property.to_dict() output.

    The declaring class is not restored here; the owning metadata
    re-attaches it (see ClassMetadata.from_dict).
    """
    type_key = data.get("type")
    if type_key not in PROPERTY_TYPES:
        raise ValueError(f"Unknown property type: {type_key!r}")

    name = data["name"]
    primary_key = data.get("primary_key", False)

    if type_key == "field":
        generator = data.get("value_generator")
        return FieldMetadata(
            name,
            type_name=data.get("type_name", "string"),
            column_name=data.get("column_name"),
            table_name=data.get("table_name"),
            primary_key=primary_key,
            versioned=data.get("versioned", False),
            nullable=data.get("nullable", False),
            unique=data.get("unique", False),
            length=data.get("length"),
            value_generator=ValueGenerator.from_dict(generator) if generator else None,
        )

    if type_key == "transient":
        return TransientMetadata(name)

    common = dict(
        primary_key=primary_key,
        mapped_by=data.get("mapped_by"),
        inversed_by=data.get("inversed_by"),
        fetch_mode=FetchMode(data.get("fetch_mode", FetchMode.LAZY.value)),
        cascade=data.get("cascade"),
        source_entity=data.get("source_entity"),
    )
    cls = PROPERTY_TYPES[type_key]
    if issubclass(cls, ToOneAssociationMetadata):
        return cls(
            name,
            data["target_entity"],
            join_columns=[JoinColumnMetadata.from_dict(c) for c in data.get("join_columns", [])],
            **common,
        )

    join_table = data.get("join_table")
    return cls(
        name,
        data["target_entity"],
        join_table=JoinTableMetadata.from_dict(join_table) if join_table else None,
        index_by=data.get("index_by"),
        **common,
    )
