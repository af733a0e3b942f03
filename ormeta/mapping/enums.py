# ==============================================
# Mapping Enums
# ==============================================
#
# - InheritanceType(Enum): NONE, SINGLE_TABLE, JOINED, TABLE_PER_CLASS
# - ChangeTrackingPolicy(Enum): DEFERRED_IMPLICIT, DEFERRED_EXPLICIT, NOTIFY
# - FetchMode(Enum): LAZY, EAGER, EXTRA_LAZY
# - PropertyKind(Enum): FIELD, TO_ONE, TO_MANY, TRANSIENT
#
# Values are the strings used in mapping descriptors and in
# serialized metadata.
# ==============================================

from enum import Enum


class InheritanceType(Enum):
    """How a class hierarchy is laid out in tables."""
    NONE = "NONE"
    SINGLE_TABLE = "SINGLE_TABLE"
    JOINED = "JOINED"
    TABLE_PER_CLASS = "TABLE_PER_CLASS"


class ChangeTrackingPolicy(Enum):
    DEFERRED_IMPLICIT = "DEFERRED_IMPLICIT"
    DEFERRED_EXPLICIT = "DEFERRED_EXPLICIT"
    NOTIFY = "NOTIFY"


class FetchMode(Enum):
    LAZY = "LAZY"
    EAGER = "EAGER"
    EXTRA_LAZY = "EXTRA_LAZY"


class PropertyKind(Enum):
    """
    Closed set of property variants.

    Every branch on property kind in the mapping code matches on this
    enum, so adding a variant means visiting each of those branches.
    """
    FIELD = "field"
    TO_ONE = "to_one"
    TO_MANY = "to_many"
    TRANSIENT = "transient"
