# ==============================================
# ComponentMetadata
# ==============================================
#
# PURPOSE:
#   Base description of a mapped class: its name, its declared
#   properties (in declaration order) and its table.
#
# CLASS: ComponentMetadata
# ------------------------
#   Constructor:
#   ------------
#   - __init__(class_name: str, context: MetadataBuildingContext | None)
#
#   Methods:
#   --------
#   - set_parent(parent) -> None
#       Remember the parent by name; the parent itself lives in the
#       context's MetadataRegistry, which is made to hold this very
#       parent object. Properties are NOT copied here.
#
#   - add_property(property) -> None
#       Raises DuplicatePropertyError on a name clash. Stamps the
#       property's declaring class.
#
#   - iter_properties() -> Iterator[(name, Property)]
#       Lazy, restartable, declaration order.
#
#   - iter_columns() -> Iterator[(column_name, column)]
#       Fields and owning-side to-one join columns only.
#
# ==============================================

from typing import Any, Dict, Iterator, Optional, Tuple

from .columns import TableMetadata
from .enums import PropertyKind
from .exceptions import DuplicatePropertyError, ParentConflictError
from .property import Property
from .registry import MetadataBuildingContext


class ComponentMetadata:
    def __init__(self, class_name: str, context: Optional[MetadataBuildingContext] = None):
        self.class_name = class_name
        self.context = context if context is not None else MetadataBuildingContext()
        self.properties: Dict[str, Property] = {}
        self.table: Optional[TableMetadata] = None
        self.parent_name: Optional[str] = None

    def get_class_name(self) -> str:
        return self.class_name

    # --- parent ---
    @property
    def parent(self) -> Optional["ComponentMetadata"]:
        if self.parent_name is None:
            return None
        return self.context.metadata.get(self.parent_name)

    def get_parent(self) -> Optional["ComponentMetadata"]:
        return self.parent

    def set_parent(self, parent: "ComponentMetadata") -> None:
        """
        Raises:
            ParentConflictError: other finalized metadata is registered
                under the parent's name
        """
        registered = self.context.metadata.get(parent.class_name)
        if registered is None:
            self.context.metadata.register(parent)
        elif registered is not parent:
            if getattr(registered, "is_finalized", False):
                raise ParentConflictError(self.class_name, parent.class_name)
            # A stale, unfinished build of the parent is superseded.
            self.context.metadata.replace(parent)
        self.parent_name = parent.class_name

    # --- properties ---
    def add_property(self, property: Property) -> None:
        name = property.get_name()
        if name in self.properties:
            raise DuplicatePropertyError(self.class_name, name)

        property.set_declaring_class(self)
        self.properties[name] = property

    def get_property(self, name: str) -> Optional[Property]:
        return self.properties.get(name)

    def has_property(self, name: str) -> bool:
        return name in self.properties

    def iter_properties(self) -> Iterator[Tuple[str, Property]]:
        for name, property in self.properties.items():
            yield name, property

    def iter_columns(self) -> Iterator[Tuple[str, Any]]:
        for property in self.properties.values():
            if property.kind is PropertyKind.FIELD:
                yield property.get_column_name(), property
            elif property.kind is PropertyKind.TO_ONE and property.is_owning_side():
                for join_column in property.get_join_columns():
                    yield join_column.get_column_name(), join_column

    # --- table ---
    def set_table(self, table: TableMetadata) -> None:
        self.table = table

    def get_table(self) -> Optional[TableMetadata]:
        return self.table

    def get_table_name(self) -> Optional[str]:
        return self.table.get_name() if self.table is not None else None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.class_name}>"
