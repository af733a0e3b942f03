# ==============================================
# MetadataFactory
# ==============================================
#
# PURPOSE:
#   Single entry point for obtaining ClassMetadata. Users ask the
#   factory; the factory asks the driver, wires up parents and
#   hands back finalized, read-only metadata.
#
# HOW A CLASS IS LOADED:
#
#   get_metadata_for("Dog")
#        │
#        ├── already built? ──────────────► return it
#        │
#        ├── lock "Dog" (per-name, single flight)
#        │
#        ├── parents root-first from the entity registry
#        │     ["Animal"]  (transient names skipped)
#        │     each parent → get_metadata_for(parent)
#        │
#        ├── driver.load_metadata_for_class("Dog", <Animal>, context)
#        │
#        ├── validate_lifecycle_callbacks()  (when enabled)
#        ├── finalize()                     (validate_identifier + freeze)
#        │
#        └── store in context.metadata ──► return it
#
# CLASS: MetadataFactory
# ----------------------
#   - __init__(driver, context=None, validate_callbacks=None)
#   - get_metadata_for(class_name) -> ClassMetadata
#   - has_metadata_for(class_name) -> bool
#   - get_all_metadata() -> list[ClassMetadata]
#   - get_loaded_metadata() -> dict[str, ClassMetadata]
#   - set_metadata_for(class_name, metadata) -> None
#   - is_transient(class_name) -> bool
#
# ==============================================

import logging
import threading
from typing import Dict, List, Optional

from ormeta.drivers.base import MappingDriver
from ormeta.mapping import ClassMetadata, MetadataBuildingContext
from ormeta.mapping.exceptions import MappingError

logger = logging.getLogger(__name__)


class MetadataFactory:
    """
    Builds, caches and hands out finalized ClassMetadata.

    Args:
        driver: Source of mapping information
        context: Shared build context (a fresh one when omitted)
        validate_callbacks: Override context.validate_callbacks
    """

    def __init__(
        self,
        driver: MappingDriver,
        context: Optional[MetadataBuildingContext] = None,
        validate_callbacks: Optional[bool] = None,
    ):
        self.driver = driver
        self.context = context or MetadataBuildingContext()
        if validate_callbacks is not None:
            self.context.validate_callbacks = validate_callbacks

        self._initialized = False
        self._init_lock = threading.Lock()
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()

    def _initialize(self) -> None:
        if self._initialized:
            return
        with self._init_lock:
            if not self._initialized:
                self.driver.register_entities(self.context.entities)
                self._initialized = True

    def _lock_for(self, class_name: str) -> threading.RLock:
        with self._locks_guard:
            lock = self._locks.get(class_name)
            if lock is None:
                lock = self._locks[class_name] = threading.RLock()
            return lock

    def _built(self, class_name: str) -> Optional[ClassMetadata]:
        metadata = self.context.metadata.get(class_name)
        if metadata is not None and metadata.is_finalized:
            return metadata
        return None

    # ======================================
    # Public API
    # ======================================
    def get_metadata_for(self, class_name: str) -> ClassMetadata:
        """
        Return finalized metadata for `class_name`, building it (and
        its parents) on first use.

        Raises:
            MappingError: any mapping problem; logged with the class name
        """
        metadata = self._built(class_name)
        if metadata is not None:
            return metadata

        self._initialize()

        with self._lock_for(class_name):
            # Another thread may have finished while we waited
            metadata = self._built(class_name)
            if metadata is not None:
                return metadata

            try:
                return self._load(class_name)
            except MappingError as e:
                logger.error("Failed to load metadata for %s: %s", class_name, e)
                raise

    def has_metadata_for(self, class_name: str) -> bool:
        return self._built(class_name) is not None

    def get_all_metadata(self) -> List[ClassMetadata]:
        self._initialize()
        return [self.get_metadata_for(name) for name in sorted(self.driver.get_all_class_names())]

    def get_loaded_metadata(self) -> Dict[str, ClassMetadata]:
        return {m.class_name: m for m in self.context.metadata.all() if m.is_finalized}

    def set_metadata_for(self, class_name: str, metadata: ClassMetadata) -> None:
        """Inject prebuilt metadata (finalized on the way in)."""
        if metadata.class_name != class_name:
            raise ValueError(f"Metadata for '{metadata.class_name}' cannot be stored as '{class_name}'")
        metadata.finalize()
        self.context.metadata.replace(metadata)

    def is_transient(self, class_name: str) -> bool:
        return self.driver.is_transient(class_name)

    # ======================================
    # Loading
    # ======================================
    def _get_parent_names(self, class_name: str) -> List[str]:
        """Mapped ancestors of `class_name`, root first."""
        if class_name not in self.context.entities:
            return []
        return [
            name for name in reversed(self.context.entities.parent_names(class_name))
            if not self.driver.is_transient(name)
        ]

    def _load(self, class_name: str) -> ClassMetadata:
        if self.driver.is_transient(class_name):
            raise MappingError(
                f"Class '{class_name}' is not a valid entity or mapped superclass",
                class_name,
            )

        parent = None
        for parent_name in self._get_parent_names(class_name):
            parent = self.get_metadata_for(parent_name)

        logger.debug(
            "Building metadata for %s (parent: %s)",
            class_name, parent.class_name if parent else None,
        )
        metadata = self.driver.load_metadata_for_class(class_name, parent, self.context)

        if self.context.validate_callbacks and class_name in self.context.entities:
            metadata.validate_lifecycle_callbacks(self.context.entities)

        metadata.finalize()
        self.context.metadata.replace(metadata)
        return metadata
