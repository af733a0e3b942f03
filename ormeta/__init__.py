# ==============================================
# ormeta: entity mapping metadata
# ==============================================
#
# Package Structure:
#
# ormeta/
# ├── mapping/       # Metadata model: properties, class metadata, errors
# ├── drivers/       # Mapping sources: JSON files, MySQL schema, MongoDB
# ├── naming.py      # Default table / column naming
# ├── factory.py     # MetadataFactory: builds and caches metadata
# ├── config.py      # Configuration management
# └── cli.py         # Command line entry point
#
# ==============================================

__version__ = "0.1.0"
