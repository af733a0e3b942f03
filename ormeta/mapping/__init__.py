# ==============================================
# MAPPING: metadata model
# ==============================================
#
# This package describes how entity classes map to tables.
#
# Modules:
# --------
# - exceptions.py      → MappingError hierarchy
# - enums.py           → InheritanceType, ChangeTrackingPolicy, FetchMode, PropertyKind
# - columns.py         → Table / join column / discriminator descriptors
# - property.py        → Field, association and transient properties
# - registry.py        → EntityRegistry, MetadataRegistry, build context
# - component.py       → ComponentMetadata (name, properties, table)
# - class_metadata.py  → ClassMetadata (identifier, inheritance, overrides)
#
# ==============================================

from .exceptions import *  # noqa: F401,F403
from .enums import ChangeTrackingPolicy, FetchMode, InheritanceType, PropertyKind
from .columns import (
    CacheMetadata,
    DiscriminatorColumnMetadata,
    JoinColumnMetadata,
    JoinTableMetadata,
    TableMetadata,
    ValueGenerator,
)
from .property import (
    AssociationMetadata,
    FieldMetadata,
    ManyToManyAssociationMetadata,
    ManyToOneAssociationMetadata,
    OneToManyAssociationMetadata,
    OneToOneAssociationMetadata,
    Property,
    ToManyAssociationMetadata,
    ToOneAssociationMetadata,
    TransientMetadata,
    property_from_dict,
)
from .registry import EntityRegistry, MetadataBuildingContext, MetadataRegistry
from .component import ComponentMetadata
from .class_metadata import ClassMetadata

__all__ = [
    "ChangeTrackingPolicy",
    "FetchMode",
    "InheritanceType",
    "PropertyKind",
    "CacheMetadata",
    "DiscriminatorColumnMetadata",
    "JoinColumnMetadata",
    "JoinTableMetadata",
    "TableMetadata",
    "ValueGenerator",
    "AssociationMetadata",
    "FieldMetadata",
    "ManyToManyAssociationMetadata",
    "ManyToOneAssociationMetadata",
    "OneToManyAssociationMetadata",
    "OneToOneAssociationMetadata",
    "Property",
    "ToManyAssociationMetadata",
    "ToOneAssociationMetadata",
    "TransientMetadata",
    "property_from_dict",
    "EntityRegistry",
    "MetadataBuildingContext",
    "MetadataRegistry",
    "ComponentMetadata",
    "ClassMetadata",
]
