# ==============================================
# Mapping Descriptors
# ==============================================
#
# PURPOSE:
#   Turn a plain dict mapping description into ClassMetadata.
#   Shared by every driver whose source stores descriptors
#   (JSON files, MongoDB documents).
#
# DESCRIPTOR SHAPE:
# -----------------
#   {
#     "class": "Dog",                       (required)
#     "entity": "app.models:Dog",           import path of the Python class
#     "extends": "Animal",                  parent entity name
#     "transient": false,                   class is not mapped at all
#     "mapped_superclass": false,
#     "embedded": false,
#     "read_only": false,
#     "table": {"name": "dogs", "schema": null}   or "dogs",
#     "repository_class": "app.repos.DogRepository",
#     "inheritance_type": "JOINED",
#     "change_tracking_policy": "DEFERRED_IMPLICIT",
#     "discriminator_column": {"name": "kind", "type": "string", "length": 32},
#     "discriminator_map": {"dog": "Dog"}   or [[1, "Dog"]],
#     "fields": [
#       {"name": "id", "type": "integer", "id": true, "generator": "IDENTITY"},
#       {"name": "version", "type": "integer", "version": true},
#       {"name": "name", "column": "dog_name", "length": 64, "nullable": true}
#     ],
#     "associations": [
#       {"name": "owner", "type": "many_to_one", "target": "Person",
#        "join_columns": [{"name": "owner_id", "referenced_column": "id"}]},
#       {"name": "toys", "type": "many_to_many", "target": "Toy",
#        "join_table": {"name": "dog_toys", "join_columns": [...],
#                       "inverse_join_columns": [...]}}
#     ],
#     "transients": ["cached_label"],
#     "overrides": [{"name": "name", "column": "label"}],
#     "lifecycle_callbacks": {"prePersist": ["on_create"]},
#     "entity_listeners": {"postLoad": [{"class": "app.listeners:Audit",
#                                         "method": "post_load"}]},
#     "cache": {"usage": "READ_ONLY", "region": "dogs"},
#     "value_generation_plan": {...}
#   }
#
# FUNCTIONS:
# ----------
# - build_metadata(descriptor, parent, context, naming=None) -> ClassMetadata
# - register_descriptor_entities(descriptors, entities) -> None
# - sort_root_first(descriptors) -> list[str]
#
# CLASS: DescriptorDriver(MappingDriver)
# --------------------------------------
#   Base of FileDriver and DocumentDriver: subclasses only say where
#   the descriptor dicts come from (_fetch_descriptors()).
#   Descriptors are read once and indexed by class name.
#
# ==============================================

import importlib
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from ormeta.drivers.base import MappingDriver
from ormeta.mapping import (
    CacheMetadata,
    ClassMetadata,
    DiscriminatorColumnMetadata,
    EntityRegistry,
    FetchMode,
    FieldMetadata,
    InheritanceType,
    JoinColumnMetadata,
    JoinTableMetadata,
    MetadataBuildingContext,
    PropertyKind,
    TableMetadata,
    TransientMetadata,
    ValueGenerator,
)
from ormeta.mapping.exceptions import DriverError, InvalidDescriptorError, UnknownOverrideFieldError
from ormeta.mapping.property import PROPERTY_TYPES, AssociationMetadata, Property
from ormeta.naming import UnderscoreNamingStrategy

logger = logging.getLogger(__name__)

ASSOCIATION_TYPES = ("many_to_one", "one_to_one", "one_to_many", "many_to_many")


def build_metadata(
    descriptor: Dict[str, Any],
    parent: Optional[ClassMetadata],
    context: MetadataBuildingContext,
    naming: Optional[UnderscoreNamingStrategy] = None,
) -> ClassMetadata:
    """
    Build the metadata described by `descriptor`.

    Raises:
        InvalidDescriptorError: the descriptor is malformed
        MappingError: the described mapping is invalid
    """
    class_name = descriptor.get("class")
    if not class_name:
        raise InvalidDescriptorError("Mapping descriptor has no 'class' entry")

    naming = naming or UnderscoreNamingStrategy()
    try:
        return _build(class_name, descriptor, parent, context, naming)
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidDescriptorError(
            f"Invalid mapping descriptor for '{class_name}': {e!r}", class_name
        ) from e


def _build(class_name, descriptor, parent, context, naming) -> ClassMetadata:
    metadata = ClassMetadata(class_name, context=context)
    metadata.set_mapped_superclass(bool(descriptor.get("mapped_superclass", False)))
    metadata.set_embedded_class(bool(descriptor.get("embedded", False)))

    if parent is not None:
        metadata.set_parent(parent)

    if "repository_class" in descriptor:
        metadata.set_custom_repository_class_name(descriptor["repository_class"])
    if "inheritance_type" in descriptor:
        metadata.set_inheritance_type(descriptor["inheritance_type"])
    if "change_tracking_policy" in descriptor:
        metadata.set_change_tracking_policy(descriptor["change_tracking_policy"])
    if descriptor.get("read_only"):
        metadata.as_read_only()

    for field_data in descriptor.get("fields", []):
        metadata.add_property(parse_field(field_data, naming))

    for association_data in descriptor.get("associations", []):
        metadata.add_property(parse_association(association_data, naming))

    for transient_name in descriptor.get("transients", []):
        metadata.add_property(TransientMetadata(transient_name))

    for override_data in descriptor.get("overrides", []):
        metadata.set_property_override(parse_override(override_data, metadata, naming))

    table = _table_for(descriptor, metadata, parent, naming)
    if table is not None:
        metadata.set_table(table)

    if "discriminator_column" in descriptor:
        metadata.set_discriminator_column(parse_discriminator_column(descriptor["discriminator_column"]))

    discriminator_map = descriptor.get("discriminator_map")
    if discriminator_map:
        items = discriminator_map.items() if isinstance(discriminator_map, dict) else discriminator_map
        for value, mapped_class in items:
            metadata.add_discriminator_map_class(value, mapped_class)

    for event, methods in descriptor.get("lifecycle_callbacks", {}).items():
        for method_name in methods:
            metadata.add_lifecycle_callback(event, method_name)

    for event, listeners in descriptor.get("entity_listeners", {}).items():
        for listener in listeners:
            metadata.add_entity_listener(event, listener["class"], listener["method"])

    if "cache" in descriptor:
        metadata.set_cache(CacheMetadata.from_dict(descriptor["cache"] or {}))

    if "value_generation_plan" in descriptor:
        metadata.set_value_generation_plan(descriptor["value_generation_plan"])

    logger.debug("Built metadata for %s (%d properties)", class_name, len(metadata.properties))
    return metadata


def _table_for(descriptor, metadata, parent, naming) -> Optional[TableMetadata]:
    table = descriptor.get("table")
    if isinstance(table, str):
        return TableMetadata(table)
    if table:
        return TableMetadata.from_dict(table)

    if metadata.is_mapped_superclass or metadata.is_embedded_class:
        return None

    # Single-table children live in the root table.
    if (
        parent is not None
        and parent.table is not None
        and metadata.inheritance_type is InheritanceType.SINGLE_TABLE
    ):
        return TableMetadata(parent.table.name, parent.table.schema)

    return TableMetadata(naming.class_to_table_name(metadata.class_name))


# ======================================
# Property parsing
# ======================================
def parse_generator(data: Any) -> Optional[ValueGenerator]:
    if not data:
        return None
    if isinstance(data, str):
        return ValueGenerator(type=data.upper())
    return ValueGenerator(type=data["type"].upper(), definition=dict(data.get("definition") or {}))


def parse_field(data: Dict[str, Any], naming: UnderscoreNamingStrategy) -> FieldMetadata:
    name = data.get("name", "")
    return FieldMetadata(
        name,
        type_name=data.get("type", "string"),
        column_name=data.get("column") or (naming.property_to_column_name(name) if name else None),
        table_name=data.get("table"),
        primary_key=bool(data.get("id", False)),
        versioned=bool(data.get("version", False)),
        nullable=bool(data.get("nullable", False)),
        unique=bool(data.get("unique", False)),
        length=data.get("length"),
        value_generator=parse_generator(data.get("generator")),
    )


def parse_join_column(data: Dict[str, Any]) -> JoinColumnMetadata:
    return JoinColumnMetadata(
        column_name=data["name"],
        referenced_column_name=data.get("referenced_column", "id"),
        table_name=data.get("table"),
        type_name=data.get("type"),
        nullable=data.get("nullable", True),
        unique=data.get("unique", False),
        on_delete=data.get("on_delete"),
    )


def parse_join_table(data: Dict[str, Any]) -> JoinTableMetadata:
    return JoinTableMetadata(
        name=data["name"],
        schema=data.get("schema"),
        join_columns=[parse_join_column(c) for c in data.get("join_columns", [])],
        inverse_join_columns=[parse_join_column(c) for c in data.get("inverse_join_columns", [])],
    )


def parse_association(
    data: Dict[str, Any],
    naming: UnderscoreNamingStrategy,
    default_type: Optional[str] = None,
    default_target: Optional[str] = None,
) -> AssociationMetadata:
    type_key = data.get("type", default_type)
    if type_key not in ASSOCIATION_TYPES:
        raise ValueError(f"unknown association type {type_key!r}")

    cls = PROPERTY_TYPES[type_key]
    name = data.get("name", "")
    common = dict(
        primary_key=bool(data.get("id", False)),
        mapped_by=data.get("mapped_by"),
        inversed_by=data.get("inversed_by"),
        fetch_mode=FetchMode(data.get("fetch", FetchMode.LAZY.value).upper()),
        cascade=data.get("cascade"),
    )
    target = data.get("target", default_target)

    if cls.kind is PropertyKind.TO_ONE:
        join_columns = [parse_join_column(c) for c in data.get("join_columns", [])]
        # Owning to-one without explicit join columns gets "<name>_id".
        if not join_columns and common["mapped_by"] is None and default_type is None and name:
            join_columns = [JoinColumnMetadata(naming.join_column_name(name), naming.referenced_column_name)]
        return cls(name, target, join_columns=join_columns, **common)

    join_table = data.get("join_table")
    return cls(
        name,
        target,
        join_table=parse_join_table(join_table) if join_table else None,
        index_by=data.get("index_by"),
        **common,
    )


def parse_override(
    data: Dict[str, Any],
    metadata: ClassMetadata,
    naming: UnderscoreNamingStrategy,
) -> Property:
    """Build an override property shaped after the property it replaces."""
    name = data.get("name", "")
    original = metadata.get_property(name)
    if original is None:
        raise UnknownOverrideFieldError(metadata.class_name, name)

    if original.kind in (PropertyKind.TO_ONE, PropertyKind.TO_MANY) or data.get("type") in ASSOCIATION_TYPES:
        return parse_association(
            data,
            naming,
            default_type=getattr(original, "type_key", None) if original.kind is not PropertyKind.FIELD else None,
            default_target=getattr(original, "target_entity", None),
        )

    field_data = dict(data)
    if original.kind is PropertyKind.FIELD:
        field_data.setdefault("type", original.get_type_name())
        field_data.setdefault("length", original.length)
        field_data.setdefault("nullable", original.nullable)
    return parse_field(field_data, naming)


def parse_discriminator_column(data: Dict[str, Any]) -> DiscriminatorColumnMetadata:
    return DiscriminatorColumnMetadata(
        column_name=data.get("name", "dtype"),
        type_name=data.get("type", "string"),
        length=data.get("length", 255),
        table_name=data.get("table"),
        column_definition=data.get("column_definition"),
    )


# ======================================
# Entity registration
# ======================================
def sort_root_first(descriptors: Dict[str, Dict[str, Any]]) -> List[str]:
    """
    Order descriptor names so every parent comes before its children.

    Raises:
        InvalidDescriptorError: on an inheritance cycle
    """
    ordered: List[str] = []
    state: Dict[str, str] = {}

    def visit(name: str) -> None:
        mark = state.get(name)
        if mark == "done":
            return
        if mark == "visiting":
            raise InvalidDescriptorError(f"Inheritance cycle through '{name}'", name)
        state[name] = "visiting"
        parent = descriptors[name].get("extends")
        if parent in descriptors:
            visit(parent)
        state[name] = "done"
        ordered.append(name)

    for name in descriptors:
        visit(name)
    return ordered


def _import_entity(path: str, class_name: str) -> type:
    module_name, _, attr = path.partition(":") if ":" in path else path.rpartition(".")
    try:
        return getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError, ValueError) as e:
        raise InvalidDescriptorError(
            f"Cannot import entity class '{path}' for '{class_name}': {e}", class_name
        ) from e


def register_descriptor_entities(descriptors: Dict[str, Dict[str, Any]], entities: EntityRegistry) -> None:
    """
    Register one entity class per descriptor, parents first.

    Descriptors naming an "entity" import path bind that class; the
    others get a synthesized class deriving from their parent's class.
    """
    for name in sort_root_first(descriptors):
        descriptor = descriptors[name]
        parent = descriptor.get("extends")
        if parent and not entities.exists(parent):
            raise InvalidDescriptorError(f"'{name}' extends unknown class '{parent}'", name)

        if descriptor.get("entity"):
            entities.register(name, _import_entity(descriptor["entity"], name))
        else:
            entities.register(name, parent=parent)


# ======================================
# Descriptor-backed drivers
# ======================================
class DescriptorDriver(MappingDriver):
    """
    Base for drivers whose source is a set of descriptor dicts.

    Subclasses implement _fetch_descriptors(); the result is read once
    and indexed by class name.
    """

    def __init__(self, naming: Optional[UnderscoreNamingStrategy] = None):
        self.naming = naming or UnderscoreNamingStrategy()
        self._descriptors: Optional[Dict[str, Dict[str, Any]]] = None

    def _fetch_descriptors(self) -> Iterable[Dict[str, Any]]:
        raise NotImplementedError

    @property
    def descriptors(self) -> Dict[str, Dict[str, Any]]:
        if self._descriptors is None:
            indexed: Dict[str, Dict[str, Any]] = {}
            for descriptor in self._fetch_descriptors():
                name = descriptor.get("class") if isinstance(descriptor, dict) else None
                if not name:
                    raise InvalidDescriptorError(f"Mapping descriptor without 'class': {descriptor!r}")
                if name in indexed:
                    raise InvalidDescriptorError(f"Class '{name}' is mapped more than once", name)
                indexed[name] = descriptor
            self._descriptors = indexed
            logger.info("%s loaded %d mapping descriptors", type(self).__name__, len(indexed))
        return self._descriptors

    def get_descriptor(self, class_name: str) -> Dict[str, Any]:
        try:
            return self.descriptors[class_name]
        except KeyError:
            raise DriverError(f"No mapping found for class '{class_name}'", class_name) from None

    def get_all_class_names(self) -> Set[str]:
        return {name for name, d in self.descriptors.items() if not d.get("transient", False)}

    def is_transient(self, class_name: str) -> bool:
        descriptor = self.descriptors.get(class_name)
        return descriptor is None or bool(descriptor.get("transient", False))

    def register_entities(self, entities: EntityRegistry) -> None:
        register_descriptor_entities(self.descriptors, entities)

    def load_metadata_for_class(
        self,
        class_name: str,
        parent: Optional[ClassMetadata],
        context: MetadataBuildingContext,
    ) -> ClassMetadata:
        return build_metadata(self.get_descriptor(class_name), parent, context, self.naming)
