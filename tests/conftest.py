# ==============================================
# Pytest Configuration and Fixtures
# ==============================================
#
# This file contains shared fixtures for all tests.
#
# FIXTURES:
# ---------
# - context           → fresh MetadataBuildingContext
# - animal            → mapped superclass Animal(id, name)
# - vehicle           → JOINED root entity Vehicle(id) with Car / Truck registered
# - mapping_dir       → tmp directory with JSON mapping files
# - write_mapping     → helper writing one JSON mapping file
#
# ==============================================

import json

import pytest

from ormeta.mapping import (
    ClassMetadata,
    FieldMetadata,
    InheritanceType,
    MetadataBuildingContext,
    TableMetadata,
    ValueGenerator,
)


@pytest.fixture
def context():
    return MetadataBuildingContext()


@pytest.fixture
def animal(context):
    """Mapped superclass Animal(id PK, name)."""
    context.entities.register("Animal")
    metadata = ClassMetadata("Animal", context=context)
    metadata.set_mapped_superclass()
    metadata.add_property(FieldMetadata("id", type_name="integer", primary_key=True))
    metadata.add_property(FieldMetadata("name"))
    context.metadata.register(metadata)
    return metadata


@pytest.fixture
def vehicle(context):
    """Concrete JOINED root Vehicle(id PK) with Car and Truck registered as subclasses."""
    context.entities.register("Vehicle")
    context.entities.register("Car", parent="Vehicle")
    context.entities.register("Truck", parent="Vehicle")

    metadata = ClassMetadata("Vehicle", context=context)
    metadata.set_inheritance_type(InheritanceType.JOINED)
    metadata.add_property(
        FieldMetadata("id", type_name="integer", primary_key=True, value_generator=ValueGenerator("IDENTITY"))
    )
    metadata.set_table(TableMetadata("vehicles"))
    context.metadata.register(metadata)
    return metadata


@pytest.fixture
def mapping_dir(tmp_path):
    path = tmp_path / "mappings"
    path.mkdir()
    return path


@pytest.fixture
def write_mapping(mapping_dir):
    def write(filename, data):
        (mapping_dir / filename).write_text(json.dumps(data), encoding="utf-8")
        return mapping_dir / filename
    return write
