# ==============================================
# Mapping Exceptions
# ==============================================
#
# PURPOSE:
#   Every failure the metadata layer can raise. All of them are
#   configuration / mapping errors found while metadata is being
#   built. None of them is ever retried or recovered locally.
#
# HIERARCHY:
# ----------
#   MappingError (RuntimeError)
#   ├── DuplicatePropertyError
#   ├── MissingFieldNameError
#   ├── MissingIdentifierError
#   ├── CompositeKeyGeneratorConflictError
#   ├── DuplicateColumnNameError
#   ├── InvalidDiscriminatorTypeError
#   ├── UnknownDiscriminatorClassError
#   ├── UnknownOverrideFieldError
#   ├── OverrideTypeMismatchError
#   ├── VersionFieldOverrideError
#   ├── DuplicateVersionPropertyError
#   ├── InvalidInheritanceTypeError
#   ├── InvalidChangeTrackingPolicyError
#   ├── SingleIdOnCompositeKeyError
#   ├── NoIdentifierDefinedError
#   ├── LifecycleCallbackNotFoundError
#   ├── EntityListenerClassNotFoundError
#   ├── EntityListenerMethodNotFoundError
#   ├── MetadataFrozenError
#   ├── ParentConflictError
#   ├── UnknownEntityError
#   ├── InvalidDescriptorError
#   └── DriverError
#
# ==============================================

from typing import Optional

__all__ = [
    "MappingError",
    "DuplicatePropertyError",
    "MissingFieldNameError",
    "MissingIdentifierError",
    "CompositeKeyGeneratorConflictError",
    "DuplicateColumnNameError",
    "InvalidDiscriminatorTypeError",
    "UnknownDiscriminatorClassError",
    "UnknownOverrideFieldError",
    "OverrideTypeMismatchError",
    "VersionFieldOverrideError",
    "DuplicateVersionPropertyError",
    "InvalidInheritanceTypeError",
    "InvalidChangeTrackingPolicyError",
    "SingleIdOnCompositeKeyError",
    "NoIdentifierDefinedError",
    "LifecycleCallbackNotFoundError",
    "EntityListenerClassNotFoundError",
    "EntityListenerMethodNotFoundError",
    "MetadataFrozenError",
    "ParentConflictError",
    "UnknownEntityError",
    "InvalidDescriptorError",
    "DriverError",
]


class MappingError(RuntimeError):
    """Base class for all mapping errors. Carries the offending class name."""

    def __init__(self, message: str, class_name: Optional[str] = None):
        super().__init__(message)
        self.class_name = class_name


class DuplicatePropertyError(MappingError):
    def __init__(self, class_name: str, property_name: str):
        super().__init__(
            f"Property '{property_name}' in '{class_name}' was already declared, "
            f"but it must be declared only once",
            class_name,
        )
        self.property_name = property_name


class MissingFieldNameError(MappingError):
    def __init__(self, class_name: str):
        super().__init__(
            f"The field or association mapping misses the 'name' attribute in entity '{class_name}'",
            class_name,
        )


class MissingIdentifierError(MappingError):
    def __init__(self, class_name: str):
        super().__init__(
            f"No identifier/primary key specified for entity '{class_name}'. "
            f"Every entity must have an identifier/primary key",
            class_name,
        )


class CompositeKeyGeneratorConflictError(MappingError):
    def __init__(self, class_name: str):
        super().__init__(
            f"Entity '{class_name}' has a composite identifier but uses an ID generator "
            f"other than manually assigning (Identity, Sequence). This is not supported",
            class_name,
        )


class DuplicateColumnNameError(MappingError):
    def __init__(self, class_name: str, column_name: str):
        super().__init__(
            f"Duplicate definition of column '{column_name}' on entity '{class_name}' "
            f"in a field or discriminator column mapping",
            class_name,
        )
        self.column_name = column_name


class InvalidDiscriminatorTypeError(MappingError):
    def __init__(self, class_name: str, type_name: str):
        super().__init__(
            f"Discriminator column type on entity '{class_name}' is not allowed: '{type_name}'. "
            f"'boolean', 'array', 'object', 'datetime', 'time' and 'date' type names are not allowed",
            class_name,
        )
        self.type_name = type_name


class UnknownDiscriminatorClassError(MappingError):
    def __init__(self, class_name: str, mapped_class_name: str):
        super().__init__(
            f"Entity class '{mapped_class_name}' used in the discriminator map of class "
            f"'{class_name}' does not exist",
            class_name,
        )
        self.mapped_class_name = mapped_class_name


class UnknownOverrideFieldError(MappingError):
    def __init__(self, class_name: str, field_name: str):
        super().__init__(
            f"Invalid field override named '{field_name}' for class '{class_name}'",
            class_name,
        )
        self.field_name = field_name


class OverrideTypeMismatchError(MappingError):
    def __init__(self, class_name: str, field_name: str):
        super().__init__(
            f"Invalid property override named '{field_name}' for class '{class_name}': "
            f"the override must keep the property kind",
            class_name,
        )
        self.field_name = field_name


class VersionFieldOverrideError(MappingError):
    def __init__(self, class_name: str, field_name: str):
        super().__init__(
            f"Invalid override for versioned field '{field_name}' in class '{class_name}'",
            class_name,
        )
        self.field_name = field_name


class DuplicateVersionPropertyError(MappingError):
    def __init__(self, class_name: str, existing: str, field_name: str):
        super().__init__(
            f"Class '{class_name}' already uses '{existing}' as version field; "
            f"'{field_name}' cannot be versioned too",
            class_name,
        )
        self.field_name = field_name


class InvalidInheritanceTypeError(MappingError):
    def __init__(self, class_name: str, inheritance_type):
        super().__init__(
            f"The inheritance type '{inheritance_type}' specified for '{class_name}' does not exist",
            class_name,
        )


class InvalidChangeTrackingPolicyError(MappingError):
    def __init__(self, class_name: str, policy):
        super().__init__(
            f"The change tracking policy '{policy}' specified for '{class_name}' does not exist",
            class_name,
        )


class SingleIdOnCompositeKeyError(MappingError):
    def __init__(self, class_name: str):
        super().__init__(
            f"Class '{class_name}' has a composite identifier; a single identifier "
            f"field name is not available",
            class_name,
        )


class NoIdentifierDefinedError(MappingError):
    def __init__(self, class_name: str):
        super().__init__(f"Class '{class_name}' does not have an identifier", class_name)


class LifecycleCallbackNotFoundError(MappingError):
    def __init__(self, class_name: str, method_name: str):
        super().__init__(
            f"Entity '{class_name}' has no method '{method_name}' to be registered "
            f"as lifecycle callback",
            class_name,
        )
        self.method_name = method_name


class EntityListenerClassNotFoundError(MappingError):
    def __init__(self, listener: str, class_name: str):
        super().__init__(
            f"Entity listener '{listener}' declared on '{class_name}' not found",
            class_name,
        )


class EntityListenerMethodNotFoundError(MappingError):
    def __init__(self, listener: str, method_name: str, class_name: str):
        super().__init__(
            f"Entity listener '{listener}' declared on '{class_name}' has no method '{method_name}'",
            class_name,
        )


class MetadataFrozenError(MappingError):
    def __init__(self, class_name: str, operation: str):
        super().__init__(
            f"Metadata of '{class_name}' is finalized; '{operation}' is not allowed",
            class_name,
        )


class ParentConflictError(MappingError):
    def __init__(self, class_name: str, parent_name: str):
        super().__init__(
            f"Cannot attach '{class_name}' to parent '{parent_name}': different finalized "
            f"metadata is already registered under that name",
            class_name,
        )
        self.parent_name = parent_name


class UnknownEntityError(MappingError):
    def __init__(self, class_name: str):
        super().__init__(f"Entity class '{class_name}' is not registered", class_name)


class InvalidDescriptorError(MappingError):
    """A mapping description could not be turned into metadata."""


class DriverError(MappingError):
    """The mapping source (file, database, collection) could not be read."""
