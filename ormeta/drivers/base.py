# ==============================================
# MappingDriver (contract)
# ==============================================
#
# PURPOSE:
#   A driver turns an external mapping description (JSON files, a
#   live database schema, a document collection...) into metadata.
#   The factory depends on this contract only.
#
# METHODS:
# --------
# - load_metadata_for_class(class_name, parent, context) -> ClassMetadata
#     `parent` is already built and registered when given.
#
# - get_all_class_names() -> set[str]
#
# - is_transient(class_name) -> bool
#     True when the class is not mapped (neither entity nor mapped
#     superclass) and must be skipped in parent chains.
#
# - register_entities(entities) -> None
#     Optional hook: drivers that know the entity classes up front
#     register them so discriminator maps and parent chains resolve.
#
# ==============================================

from abc import ABC, abstractmethod
from typing import Optional, Set

from ormeta.mapping import ClassMetadata, EntityRegistry, MetadataBuildingContext


class MappingDriver(ABC):
    """Contract for metadata drivers."""

    @abstractmethod
    def load_metadata_for_class(
        self,
        class_name: str,
        parent: Optional[ClassMetadata],
        context: MetadataBuildingContext,
    ) -> ClassMetadata:
        """Build the metadata of `class_name`, chained to `parent`."""

    @abstractmethod
    def get_all_class_names(self) -> Set[str]:
        """Names of all classes this driver maps."""

    @abstractmethod
    def is_transient(self, class_name: str) -> bool:
        """Whether `class_name` should NOT have metadata loaded."""

    def register_entities(self, entities: EntityRegistry) -> None:
        return None
