# ==============================================
# ClassMetadata
# ==============================================
#
# PURPOSE:
#   Full object-relational description of one entity class:
#   identifier, inheritance, discriminator, versioning, lifecycle
#   callbacks, entity listeners and property overrides.
#
# BUILD LIFECYCLE:
# ----------------
#   Unattached
#     → set_parent()              (optional, copies parent properties)
#     → add_property() / set_property_override()
#     → set_table()               (back-fills table names)
#     → set_discriminator_*()
#     → finalize()                (validate_identifier(), then frozen)
#
#   Once finalized every mutator, and every setter of the properties
#   it holds, raises MetadataFrozenError. The instance may then be
#   read from any number of threads.
#
# INHERITANCE:
# ------------
#   Properties declared on a mapped superclass are deep-copied into
#   each subclass (a mapped superclass has no table of its own, so the
#   copies get the subclass table). Properties declared on a concrete
#   entity are shared by reference with its subclasses until a
#   subclass has to back-fill its own table name into one of them;
#   that subclass then gets a private copy.
#
# SERIALIZATION:
# --------------
#   fields_to_persist() -> list[str]
#       Always:   properties, field_names, identifier, class_name,
#                 parent_name, table, value_generation_plan
#       Only when not default: change_tracking_policy,
#                 custom_repository_class_name, inheritance_type (+
#                 discriminator_column/value/map, sub_classes),
#                 is_mapped_superclass, is_embedded_class,
#                 version_property, lifecycle_callbacks,
#                 entity_listeners, cache, read_only
#
#   to_dict() / from_dict(data, context)
#
# ==============================================

import copy
import functools
import importlib
import logging
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from .columns import CacheMetadata, DiscriminatorColumnMetadata, TableMetadata
from .component import ComponentMetadata
from .enums import ChangeTrackingPolicy, InheritanceType, PropertyKind
from .exceptions import (
    CompositeKeyGeneratorConflictError,
    DuplicateColumnNameError,
    DuplicatePropertyError,
    DuplicateVersionPropertyError,
    EntityListenerClassNotFoundError,
    EntityListenerMethodNotFoundError,
    InvalidChangeTrackingPolicyError,
    InvalidDiscriminatorTypeError,
    InvalidInheritanceTypeError,
    LifecycleCallbackNotFoundError,
    MappingError,
    MetadataFrozenError,
    MissingFieldNameError,
    MissingIdentifierError,
    NoIdentifierDefinedError,
    OverrideTypeMismatchError,
    SingleIdOnCompositeKeyError,
    UnknownDiscriminatorClassError,
    UnknownEntityError,
    UnknownOverrideFieldError,
    VersionFieldOverrideError,
)
from .property import FieldMetadata, Property, property_from_dict
from .registry import EntityRegistry, MetadataBuildingContext

logger = logging.getLogger(__name__)

# Discriminator values must be simply comparable.
INVALID_DISCRIMINATOR_TYPES = ("boolean", "array", "object", "datetime", "time", "date")

ALWAYS_PERSISTED = [
    "properties",
    "field_names",
    "identifier",
    "class_name",
    "parent_name",
    "table",
    "value_generation_plan",
]


def _mutator(method):
    """Reject the call once the metadata is finalized."""
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self._finalized:
            raise MetadataFrozenError(self.class_name, method.__name__)
        return method(self, *args, **kwargs)
    return wrapper


def _import_listener(path: str) -> Optional[type]:
    # Accepts "package.module:Class" or "package.module.Class"
    if ":" in path:
        module_name, _, attr = path.partition(":")
    else:
        module_name, _, attr = path.rpartition(".")
    if not module_name or not attr:
        return None
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError):
        return None


class ClassMetadata(ComponentMetadata):
    """
    Object-relational mapping metadata of one entity and its associations.

    Args:
        class_name: Logical entity name
        parent: Optional metadata of the parent class (already built)
        context: Build context holding the entity and metadata registries
    """

    def __init__(
        self,
        class_name: str,
        parent: Optional[ComponentMetadata] = None,
        context: Optional[MetadataBuildingContext] = None,
    ):
        super().__init__(class_name, context)

        self._finalized = False

        self.custom_repository_class_name: Optional[str] = None
        self.is_mapped_superclass = False
        self.is_embedded_class = False
        self.read_only = False

        self.identifier: List[str] = []
        self.field_names: Dict[str, str] = {}  # column name -> field name
        self.version_property: Optional[FieldMetadata] = None

        self.inheritance_type = InheritanceType.NONE
        self.change_tracking_policy = ChangeTrackingPolicy.DEFERRED_IMPLICIT
        self.discriminator_column: Optional[DiscriminatorColumnMetadata] = None
        self.discriminator_value: Any = None
        self.discriminator_map: Dict[Any, str] = {}
        self.sub_classes: List[str] = []

        self.lifecycle_callbacks: Dict[str, List[str]] = {}
        self.entity_listeners: Dict[str, List[Dict[str, str]]] = {}

        self.cache: Optional[CacheMetadata] = None
        self.value_generation_plan: Any = None

        if parent is not None:
            self.set_parent(parent)

    # ======================================
    # Lifecycle
    # ======================================
    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def finalize(self) -> "ClassMetadata":
        """Validate the identifier and freeze the instance."""
        if self._finalized:
            return self
        self.validate_identifier()
        for property in self.properties.values():
            property.freeze()
        self._finalized = True
        return self

    # ======================================
    # Parent resolution
    # ======================================
    @_mutator
    def set_parent(self, parent: ComponentMetadata) -> None:
        super().set_parent(parent)

        for _, property in parent.iter_properties():
            self.add_inherited_property(property)

        if not isinstance(parent, ClassMetadata):
            return

        self.set_inheritance_type(parent.inheritance_type)
        self.set_identifier(parent.identifier)
        self.set_change_tracking_policy(parent.change_tracking_policy)

        if parent.discriminator_column is not None:
            self.set_discriminator_column(copy.copy(parent.discriminator_column))
            self.set_discriminator_map(parent.discriminator_map)

        if parent.is_mapped_superclass:
            self.set_custom_repository_class_name(parent.custom_repository_class_name)

        if parent.cache is not None:
            self.set_cache(copy.copy(parent.cache))

        if parent.lifecycle_callbacks:
            self.lifecycle_callbacks = {
                event: list(methods) for event, methods in parent.lifecycle_callbacks.items()
            }

        if parent.entity_listeners:
            self.entity_listeners = {
                event: [dict(listener) for listener in listeners]
                for event, listeners in parent.entity_listeners.items()
            }

    @_mutator
    def add_inherited_property(self, property: Property) -> None:
        """
        Add a property coming from an ancestor without re-stamping its declaring class.

        Raises:
            DuplicatePropertyError: this class already declares the name
        """
        name = property.get_name()
        if name in self.properties:
            raise DuplicatePropertyError(self.class_name, name)

        declaring = property.declaring_class
        from_mapped_superclass = isinstance(declaring, ClassMetadata) and declaring.is_mapped_superclass
        inherited = property.copy() if from_mapped_superclass else property

        if inherited.kind is PropertyKind.FIELD:
            if inherited.is_versioned():
                self._set_version_property(inherited)
            self.field_names[inherited.get_column_name()] = name
        elif inherited.kind in (PropertyKind.TO_ONE, PropertyKind.TO_MANY):
            if from_mapped_superclass:
                inherited.set_source_entity(self.class_name)
            if inherited.kind is PropertyKind.TO_ONE and inherited.is_owning_side():
                for join_column in inherited.get_join_columns():
                    self.field_names[join_column.get_column_name()] = name

        self.properties[name] = inherited

    # ======================================
    # Properties
    # ======================================
    @_mutator
    def add_property(self, property: Property) -> None:
        """
        Add a property declared by this class.

        Raises:
            MissingFieldNameError: the property has no name
            DuplicatePropertyError: the name is already taken
        """
        name = property.get_name()
        if not name:
            raise MissingFieldNameError(self.class_name)
        if name in self.properties:
            raise DuplicatePropertyError(self.class_name, name)
        if property.kind is PropertyKind.FIELD and property.is_versioned():
            self._set_version_property(property)

        super().add_property(property)
        self._index_property(property)

    def _index_property(self, property: Property) -> None:
        name = property.get_name()

        if property.kind is PropertyKind.FIELD:
            if property.is_versioned():
                self._set_version_property(property)
            self.field_names[property.get_column_name()] = name
        elif property.kind is PropertyKind.TO_ONE:
            if property.is_owning_side():
                for join_column in property.get_join_columns():
                    self.field_names[join_column.get_column_name()] = name
        # TO_MANY and TRANSIENT own no column of this table.

        if property.is_primary_key() and name not in self.identifier:
            self.identifier.append(name)

    def _set_version_property(self, property: FieldMetadata) -> None:
        current = self.version_property
        if current is not None and current.get_name() != property.get_name():
            raise DuplicateVersionPropertyError(self.class_name, current.get_name(), property.get_name())
        self.version_property = property

    @_mutator
    def set_property_override(self, property: Property) -> None:
        """
        Change storage details of an inherited property.

        Raises:
            UnknownOverrideFieldError: no property of that name exists
            OverrideTypeMismatchError: the override changes the property variant
            VersionFieldOverrideError: the original is the version field
        """
        name = property.get_name()
        if name not in self.properties:
            raise UnknownOverrideFieldError(self.class_name, name)

        original = self.properties[name]

        # Transient -> persistent is a brand new property.
        if original.kind is PropertyKind.TRANSIENT:
            before = dict(self.properties)
            del self.properties[name]
            try:
                self.add_property(property)
            except MappingError:
                self.properties = before
                raise
            return

        if type(original) is not type(property):
            raise OverrideTypeMismatchError(self.class_name, name)

        if original.kind is PropertyKind.FIELD and original.is_versioned():
            raise VersionFieldOverrideError(self.class_name, name)

        if original.kind is PropertyKind.FIELD:
            self.field_names.pop(original.get_column_name(), None)
            property.set_primary_key(original.is_primary_key())
            if property.get_table_name() is None:
                property.set_table_name(original.get_table_name() or self.get_table_name())
            overridden = property
        else:
            if original.kind is PropertyKind.TO_ONE and original.is_owning_side():
                for join_column in original.get_join_columns():
                    self.field_names.pop(join_column.get_column_name(), None)

            # The original may be shared with the parent; work on a copy.
            overridden = original.copy()
            if property.get_inversed_by():
                overridden.set_inversed_by(property.get_inversed_by())
            if property.get_fetch_mode() is not original.get_fetch_mode():
                overridden.set_fetch_mode(property.get_fetch_mode())
            if overridden.kind is PropertyKind.TO_ONE and property.get_join_columns():
                overridden.set_join_columns(copy.deepcopy(property.get_join_columns()))
            elif overridden.kind is PropertyKind.TO_MANY and property.get_join_table() is not None:
                overridden.set_join_table(copy.deepcopy(property.get_join_table()))

        overridden.set_declaring_class(original.declaring_class or self)
        # Same key keeps the declaration position.
        self.properties[name] = overridden
        self._index_property(overridden)

    def is_inherited_property(self, field_name: str) -> bool:
        property = self.properties.get(field_name)
        if property is None:
            return False
        return property.declaring_class_name != self.class_name

    def has_field(self, field_name: str) -> bool:
        property = self.properties.get(field_name)
        return property is not None and property.kind is PropertyKind.FIELD

    def get_column(self, column_name: str) -> Optional[FieldMetadata]:
        for property in self.properties.values():
            if property.kind is PropertyKind.FIELD and property.get_column_name() == column_name:
                return property
        return None

    def check_property_duplication(self, column_name: str) -> bool:
        return column_name in self.field_names or (
            self.discriminator_column is not None
            and self.discriminator_column.get_column_name() == column_name
        )

    def iter_columns(self) -> Iterator[Tuple[str, Any]]:
        yield from super().iter_columns()
        if self.discriminator_column is not None:
            yield self.discriminator_column.get_column_name(), self.discriminator_column

    # ======================================
    # Table
    # ======================================
    @_mutator
    def set_table(self, table: TableMetadata) -> None:
        """Assign the table and fill in every property that has no table name yet."""
        self.table = table

        for name, property in list(self.properties.items()):
            if not self._lacks_table_name(property):
                continue
            if property.is_frozen or self._is_shared_with_parent(name, property):
                # Never write into an ancestor's property; back-fill our own copy.
                property = self._own_copy(name, property)

            if property.kind is PropertyKind.FIELD:
                property.set_table_name(table.get_name())
            else:
                for join_column in property.get_join_columns():
                    if join_column.table_name is None:
                        join_column.table_name = table.get_name()

        if self.discriminator_column is not None and self.discriminator_column.table_name is None:
            self.discriminator_column.table_name = table.get_name()

    @staticmethod
    def _lacks_table_name(property: Property) -> bool:
        if property.kind is PropertyKind.FIELD:
            return property.get_table_name() is None
        if property.kind is PropertyKind.TO_ONE and property.is_owning_side():
            return any(c.table_name is None for c in property.get_join_columns())
        return False

    def _is_shared_with_parent(self, name: str, property: Property) -> bool:
        parent = self.parent
        return parent is not None and parent.get_property(name) is property

    def _own_copy(self, name: str, property: Property) -> Property:
        duplicate = property.copy()
        self.properties[name] = duplicate
        if self.version_property is property:
            self.version_property = duplicate
        return duplicate

    def get_schema_name(self) -> Optional[str]:
        return self.table.get_schema() if self.table is not None else None

    def get_temporary_id_table_name(self) -> str:
        schema = self.get_schema_name()
        prefix = f"{schema}_" if schema is not None else ""
        return f"{prefix}{self.get_table_name()}_id_tmp"

    # ======================================
    # Identifier
    # ======================================
    @_mutator
    def set_identifier(self, identifier: List[str]) -> None:
        self.identifier = list(identifier)

    def get_identifier(self) -> List[str]:
        return list(self.identifier)

    def get_identifier_field_names(self) -> List[str]:
        return list(self.identifier)

    def is_identifier(self, field_name: str) -> bool:
        if not self.identifier:
            return False
        if not self.is_identifier_composite():
            return field_name == self.identifier[0]
        return field_name in self.identifier

    def is_identifier_composite(self) -> bool:
        return len(self.identifier) > 1

    def get_single_identifier_field_name(self) -> str:
        if self.is_identifier_composite():
            raise SingleIdOnCompositeKeyError(self.class_name)
        if not self.identifier:
            raise NoIdentifierDefinedError(self.class_name)
        return self.identifier[0]

    def validate_identifier(self) -> None:
        """
        Raises:
            MissingIdentifierError: an entity has no identifier
            CompositeKeyGeneratorConflictError: a composite key uses a value generator
        """
        if self.is_mapped_superclass or self.is_embedded_class:
            return

        if not self.identifier:
            raise MissingIdentifierError(self.class_name)

        generated = [
            property for property in self.properties.values()
            if property.kind is PropertyKind.FIELD
            and property.is_primary_key()
            and property.has_value_generator()
        ]
        if generated and self.is_identifier_composite():
            raise CompositeKeyGeneratorConflictError(self.class_name)

    def get_identifier_columns(self, factory=None) -> Dict[str, Any]:
        """
        Map identifier column names to their column descriptors.

        Association identifiers contribute their join columns. When a
        factory is given, join columns without a type take the type of
        the referenced column on the target entity.
        """
        columns: Dict[str, Any] = {}

        for id_name in self.identifier:
            property = self.properties[id_name]

            if property.kind is PropertyKind.FIELD:
                columns[property.get_column_name()] = property
                continue

            target = factory.get_metadata_for(property.get_target_entity()) if factory else None
            if not property.is_owning_side() and target is not None:
                property = target.get_property(property.get_mapped_by())
                target = factory.get_metadata_for(property.get_target_entity())

            if property.kind is PropertyKind.TO_MANY:
                join_table = property.get_join_table()
                join_columns = join_table.inverse_join_columns if join_table else []
            else:
                join_columns = property.get_join_columns()

            for join_column in join_columns:
                if join_column.type_name is None and target is not None:
                    referenced = target.get_column(join_column.referenced_column_name)
                    if referenced is not None:
                        join_column = copy.copy(join_column)
                        join_column.type_name = referenced.get_type_name()
                columns[join_column.get_column_name()] = join_column

        return columns

    # ======================================
    # Inheritance
    # ======================================
    @_mutator
    def set_inheritance_type(self, inheritance_type: Union[InheritanceType, str]) -> None:
        if not isinstance(inheritance_type, InheritanceType):
            try:
                inheritance_type = InheritanceType(inheritance_type)
            except ValueError:
                raise InvalidInheritanceTypeError(self.class_name, inheritance_type) from None
        self.inheritance_type = inheritance_type

    @_mutator
    def set_change_tracking_policy(self, policy: Union[ChangeTrackingPolicy, str]) -> None:
        if not isinstance(policy, ChangeTrackingPolicy):
            try:
                policy = ChangeTrackingPolicy(policy)
            except ValueError:
                raise InvalidChangeTrackingPolicyError(self.class_name, policy) from None
        self.change_tracking_policy = policy

    @_mutator
    def set_mapped_superclass(self, flag: bool = True) -> None:
        self.is_mapped_superclass = flag

    @_mutator
    def set_embedded_class(self, flag: bool = True) -> None:
        self.is_embedded_class = flag

    @_mutator
    def set_subclasses(self, subclasses: List[str]) -> None:
        for subclass in subclasses:
            self.sub_classes.append(subclass)

    def get_sub_classes(self) -> List[str]:
        return list(self.sub_classes)

    def iter_ancestors(self) -> Iterator[ComponentMetadata]:
        """Nearest concrete ancestor first; mapped superclasses are skipped."""
        node: ComponentMetadata = self
        while node.parent_name is not None:
            parent = node.parent
            if parent is None:
                logger.warning(
                    "Parent '%s' of '%s' is not registered", node.parent_name, node.class_name
                )
                return
            node = parent
            if isinstance(parent, ClassMetadata) and parent.is_mapped_superclass:
                continue
            yield parent

    def get_root_class_name(self) -> str:
        parent = self.parent
        if isinstance(parent, ClassMetadata) and not parent.is_mapped_superclass:
            return parent.get_root_class_name()
        return self.class_name

    def is_root_entity(self) -> bool:
        return self.class_name == self.get_root_class_name()

    # ======================================
    # Discriminator
    # ======================================
    @_mutator
    def set_discriminator_column(self, discriminator_column: DiscriminatorColumnMetadata) -> None:
        """
        Raises:
            DuplicateColumnNameError: a field already uses the column name
            InvalidDiscriminatorTypeError: the column type is not simply comparable
        """
        column_name = discriminator_column.get_column_name()
        if column_name in self.field_names:
            raise DuplicateColumnNameError(self.class_name, column_name)

        if discriminator_column.get_type_name() in INVALID_DISCRIMINATOR_TYPES:
            raise InvalidDiscriminatorTypeError(self.class_name, discriminator_column.get_type_name())

        if discriminator_column.table_name is None:
            discriminator_column.table_name = self.get_table_name()

        self.discriminator_column = discriminator_column

    @_mutator
    def set_discriminator_map(self, discriminator_map: Dict[Any, str]) -> None:
        for value, class_name in discriminator_map.items():
            self.add_discriminator_map_class(value, class_name)

    @_mutator
    def add_discriminator_map_class(self, value: Any, class_name: str) -> None:
        """
        Raises:
            UnknownDiscriminatorClassError: class_name is not a registered entity
        """
        self.discriminator_map[value] = class_name

        if class_name == self.class_name:
            self.discriminator_value = value
            return

        entities = self.context.entities
        if not entities.exists(class_name):
            raise UnknownDiscriminatorClassError(self.class_name, class_name)

        if entities.is_subclass(class_name, self.class_name) and class_name not in self.sub_classes:
            self.sub_classes.append(class_name)

    # ======================================
    # Callbacks & listeners
    # ======================================
    def has_lifecycle_callbacks(self, event: str) -> bool:
        return event in self.lifecycle_callbacks

    def get_lifecycle_callbacks(self, event: str) -> List[str]:
        return list(self.lifecycle_callbacks.get(event, []))

    @_mutator
    def add_lifecycle_callback(self, event: str, method_name: str) -> None:
        callbacks = self.lifecycle_callbacks.setdefault(event, [])
        if method_name not in callbacks:
            callbacks.append(method_name)

    def validate_lifecycle_callbacks(self, entities: EntityRegistry) -> None:
        """
        Raises:
            UnknownEntityError: the entity class is not registered
            LifecycleCallbackNotFoundError: a callback method is missing
        """
        if not self.lifecycle_callbacks:
            return

        cls = entities.resolve(self.class_name)
        for methods in self.lifecycle_callbacks.values():
            for method_name in methods:
                if not callable(getattr(cls, method_name, None)):
                    raise LifecycleCallbackNotFoundError(self.class_name, method_name)

    @_mutator
    def add_entity_listener(self, event: str, listener_class: Union[type, str], method_name: str) -> None:
        """
        Register `listener_class.method_name` for an entity event.

        listener_class is a class or an import path ("pkg.module:Class").
        """
        if isinstance(listener_class, str):
            listener_name = listener_class
            cls = _import_listener(listener_class)
        else:
            cls = listener_class
            listener_name = f"{cls.__module__}.{cls.__qualname__}"

        if cls is None:
            raise EntityListenerClassNotFoundError(listener_name, self.class_name)

        if not callable(getattr(cls, method_name, None)):
            raise EntityListenerMethodNotFoundError(listener_name, method_name, self.class_name)

        listener = {"class": listener_name, "method": method_name}
        listeners = self.entity_listeners.setdefault(event, [])
        if listener not in listeners:
            listeners.append(listener)

    # ======================================
    # Misc settings
    # ======================================
    @_mutator
    def set_custom_repository_class_name(self, repository_class_name: Optional[str]) -> None:
        self.custom_repository_class_name = repository_class_name

    def get_custom_repository_class_name(self) -> Optional[str]:
        return self.custom_repository_class_name

    @_mutator
    def set_cache(self, cache: Optional[CacheMetadata]) -> None:
        self.cache = cache

    @_mutator
    def set_value_generation_plan(self, plan: Any) -> None:
        self.value_generation_plan = plan

    def get_value_generation_plan(self) -> Any:
        return self.value_generation_plan

    @_mutator
    def as_read_only(self) -> None:
        self.read_only = True

    def is_read_only(self) -> bool:
        return self.read_only

    def is_versioned(self) -> bool:
        return self.version_property is not None

    # ======================================
    # Serialization
    # ======================================
    def fields_to_persist(self) -> List[str]:
        fields = list(ALWAYS_PERSISTED)

        if self.change_tracking_policy is not ChangeTrackingPolicy.DEFERRED_IMPLICIT:
            fields.append("change_tracking_policy")

        if self.custom_repository_class_name:
            fields.append("custom_repository_class_name")

        if self.inheritance_type is not InheritanceType.NONE:
            fields.extend([
                "inheritance_type",
                "discriminator_column",
                "discriminator_value",
                "discriminator_map",
                "sub_classes",
            ])

        if self.is_mapped_superclass:
            fields.append("is_mapped_superclass")

        if self.is_embedded_class:
            fields.append("is_embedded_class")

        if self.is_versioned():
            fields.append("version_property")

        if self.lifecycle_callbacks:
            fields.append("lifecycle_callbacks")

        if self.entity_listeners:
            fields.append("entity_listeners")

        if self.cache is not None:
            fields.append("cache")

        if self.read_only:
            fields.append("read_only")

        return fields

    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable snapshot containing only fields_to_persist()."""
        encoders = {
            "properties": lambda v: [p.to_dict() for p in v.values()],
            "field_names": dict,
            "identifier": list,
            "table": lambda v: v.to_dict() if v is not None else None,
            "change_tracking_policy": lambda v: v.value,
            "inheritance_type": lambda v: v.value,
            "discriminator_column": lambda v: v.to_dict() if v is not None else None,
            # Pairs keep int discriminator values intact through JSON.
            "discriminator_map": lambda v: [[value, name] for value, name in v.items()],
            "sub_classes": list,
            "version_property": lambda v: v.get_name(),
            "lifecycle_callbacks": lambda v: {e: list(m) for e, m in v.items()},
            "entity_listeners": lambda v: {e: [dict(x) for x in l] for e, l in v.items()},
            "cache": lambda v: v.to_dict(),
        }
        data = {}
        for name in self.fields_to_persist():
            value = getattr(self, name)
            encoder = encoders.get(name)
            data[name] = encoder(value) if encoder else value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], context: Optional[MetadataBuildingContext] = None) -> "ClassMetadata":
        """
        Rehydrate a finalized instance from to_dict() output.

        Properties declared by other classes are re-attached to those
        classes' metadata, which must already be in context.metadata.
        """
        metadata = cls(data["class_name"], context=context)
        metadata.parent_name = data.get("parent_name")

        table = data.get("table")
        metadata.table = TableMetadata.from_dict(table) if table else None
        metadata.identifier = list(data.get("identifier", []))
        metadata.field_names = dict(data.get("field_names", {}))
        metadata.value_generation_plan = data.get("value_generation_plan")

        for property_data in data.get("properties", []):
            property = property_from_dict(property_data)
            declaring_name = property_data.get("declaring_class")
            if declaring_name is None or declaring_name == metadata.class_name:
                declaring = metadata
            else:
                declaring = metadata.context.metadata.get(declaring_name)
                if declaring is None:
                    raise UnknownEntityError(declaring_name)
            property.set_declaring_class(declaring)
            metadata.properties[property.get_name()] = property

        if "change_tracking_policy" in data:
            metadata.change_tracking_policy = ChangeTrackingPolicy(data["change_tracking_policy"])
        metadata.custom_repository_class_name = data.get("custom_repository_class_name")
        if "inheritance_type" in data:
            metadata.inheritance_type = InheritanceType(data["inheritance_type"])
        column = data.get("discriminator_column")
        metadata.discriminator_column = DiscriminatorColumnMetadata.from_dict(column) if column else None
        metadata.discriminator_value = data.get("discriminator_value")
        metadata.discriminator_map = {value: name for value, name in data.get("discriminator_map", [])}
        metadata.sub_classes = list(data.get("sub_classes", []))
        metadata.is_mapped_superclass = data.get("is_mapped_superclass", False)
        metadata.is_embedded_class = data.get("is_embedded_class", False)
        if data.get("version_property"):
            metadata.version_property = metadata.properties[data["version_property"]]
        metadata.lifecycle_callbacks = {
            e: list(m) for e, m in data.get("lifecycle_callbacks", {}).items()
        }
        metadata.entity_listeners = {
            e: [dict(x) for x in l] for e, l in data.get("entity_listeners", {}).items()
        }
        cache = data.get("cache")
        metadata.cache = CacheMetadata.from_dict(cache) if cache else None
        metadata.read_only = data.get("read_only", False)

        for property in metadata.properties.values():
            property.freeze()
        metadata._finalized = True
        return metadata
