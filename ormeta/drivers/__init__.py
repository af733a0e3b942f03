# ==============================================
# DRIVERS: where mapping information comes from
# ==============================================
#
# A driver turns some source of mapping information into
# ClassMetadata, one class at a time, on the factory's request.
#
# Modules:
# --------
# - base.py             → MappingDriver contract
# - descriptor.py       → Build ClassMetadata from a descriptor dict
# - file_driver.py      → Descriptors from JSON files
# - document_driver.py  → Descriptors from a MongoDB collection
# - database_driver.py  → Reverse-engineered from a MySQL schema
#
# ==============================================

from .base import MappingDriver
from .descriptor import DescriptorDriver, build_metadata
from .file_driver import FileDriver
from .document_driver import DocumentDriver
from .database_driver import DatabaseDriver

__all__ = [
    "MappingDriver",
    "DescriptorDriver",
    "build_metadata",
    "FileDriver",
    "DocumentDriver",
    "DatabaseDriver"
]
