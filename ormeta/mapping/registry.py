# ==============================================
# Registries & Build Context
# ==============================================
#
# PURPOSE:
#   Replace process-wide class loading with explicit lookups.
#
#   EntityRegistry   → logical entity name  -> Python class
#   MetadataRegistry → logical entity name  -> ClassMetadata
#
#   Parent links between metadata objects are stored by NAME and
#   resolved through a MetadataRegistry, so metadata objects never
#   own each other.
#
# CLASSES:
# --------
# - EntityRegistry
#     register(name, cls=None, parent=None) -> type
#         Register an entity class. When cls is None, a plain class is
#         synthesized, deriving from the parent's class if given.
#     entity(name=None)           → class decorator form of register()
#     resolve(name) -> type       → raises UnknownEntityError
#     exists(name) -> bool
#     name_of(cls) -> str | None
#     is_subclass(name, of) -> bool
#     parent_names(name) -> list[str]   (nearest ancestor first)
#     names() -> list[str]
#
# - MetadataRegistry (thread-safe)
#     get(name) / register(metadata) / names() / all()
#
# - MetadataBuildingContext (dataclass)
#     entities: EntityRegistry
#     metadata: MetadataRegistry
#     validate_callbacks: bool
#
# ==============================================

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from .exceptions import UnknownEntityError

if TYPE_CHECKING:
    from .class_metadata import ClassMetadata


class EntityRegistry:
    """Explicit mapping from logical entity name to entity class."""

    def __init__(self):
        self._classes: Dict[str, type] = {}
        self._names: Dict[type, str] = {}

    def register(self, name: str, cls: Optional[type] = None, parent: Optional[str] = None) -> type:
        existing = self._classes.get(name)
        if existing is not None:
            if cls is None or cls is existing:
                return existing
            raise ValueError(f"Entity name '{name}' is already bound to {existing!r}")

        if cls is None:
            base = self.resolve(parent) if parent else object
            cls = type(name, (base,), {"__module__": __name__, "__qualname__": name})

        self._classes[name] = cls
        self._names.setdefault(cls, name)
        return cls

    def entity(self, name: Optional[str] = None) -> Callable[[type], type]:
        """
        Decorator registering a class under `name` (default: its __name__).

            @registry.entity()
            class Dog(Animal): ...
        """
        def decorator(cls: type) -> type:
            self.register(name or cls.__name__, cls)
            return cls
        return decorator

    def resolve(self, name: str) -> type:
        try:
            return self._classes[name]
        except KeyError:
            raise UnknownEntityError(name) from None

    def exists(self, name: str) -> bool:
        return name in self._classes

    def name_of(self, cls: type) -> Optional[str]:
        return self._names.get(cls)

    def is_subclass(self, name: str, of: str) -> bool:
        """True when `name` is a strict subclass of `of`. Unknown names are never subclasses."""
        if name == of or name not in self._classes or of not in self._classes:
            return False
        return issubclass(self._classes[name], self._classes[of])

    def parent_names(self, name: str) -> List[str]:
        cls = self.resolve(name)
        parents = []
        for base in cls.__mro__[1:]:
            base_name = self._names.get(base)
            if base_name is not None:
                parents.append(base_name)
        return parents

    def names(self) -> List[str]:
        return list(self._classes)

    def __contains__(self, name: str) -> bool:
        return name in self._classes

    def __len__(self) -> int:
        return len(self._classes)


class MetadataRegistry:
    """Thread-safe store of built metadata, keyed by class name."""

    def __init__(self):
        self._lock = threading.RLock()
        self._metadata: Dict[str, "ClassMetadata"] = {}

    def get(self, name: str) -> Optional["ClassMetadata"]:
        with self._lock:
            return self._metadata.get(name)

    def register(self, metadata: "ClassMetadata") -> "ClassMetadata":
        """Store metadata unless the name is taken; returns the stored instance."""
        with self._lock:
            return self._metadata.setdefault(metadata.class_name, metadata)

    def replace(self, metadata: "ClassMetadata") -> None:
        with self._lock:
            self._metadata[metadata.class_name] = metadata

    def names(self) -> List[str]:
        with self._lock:
            return list(self._metadata)

    def all(self) -> List["ClassMetadata"]:
        with self._lock:
            return list(self._metadata.values())

    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._metadata

    def __len__(self) -> int:
        with self._lock:
            return len(self._metadata)


@dataclass
class MetadataBuildingContext:
    """Everything a driver needs while building metadata."""
    entities: EntityRegistry = field(default_factory=EntityRegistry)
    metadata: MetadataRegistry = field(default_factory=MetadataRegistry)
    validate_callbacks: bool = True
