# ==============================================
# Tests for MetadataFactory
# ==============================================

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor

import pytest

from ormeta.drivers import FileDriver
from ormeta.factory import MetadataFactory
from ormeta.mapping import (
    ClassMetadata,
    FieldMetadata,
    InheritanceType,
    LifecycleCallbackNotFoundError,
    MappingError,
    MetadataFrozenError,
    MissingIdentifierError,
)


class CountingDriver(FileDriver):
    """FileDriver that counts how often each class is built."""

    def __init__(self, mapping_dir):
        super().__init__(mapping_dir)
        self.loads = Counter()

    def load_metadata_for_class(self, class_name, parent, context):
        self.loads[class_name] += 1
        return super().load_metadata_for_class(class_name, parent, context)


@pytest.fixture
def vehicles(write_mapping):
    write_mapping("vehicles.json", [
        {
            "class": "Vehicle",
            "inheritance_type": "JOINED",
            "discriminator_column": {"name": "kind"},
            "discriminator_map": {"vehicle": "Vehicle", "car": "Car", "sports_car": "SportsCar"},
            "fields": [{"name": "id", "type": "integer", "id": True, "generator": "IDENTITY"}],
        },
        {"class": "Car", "extends": "Vehicle", "fields": [{"name": "doors", "type": "integer"}]},
        {"class": "SportsCar", "extends": "Car", "fields": [{"name": "topSpeed", "type": "integer"}]},
    ])


@pytest.fixture
def driver(mapping_dir):
    return CountingDriver(mapping_dir)


@pytest.fixture
def factory(driver):
    return MetadataFactory(driver)


class TestLoading:
    def test_parents_built_root_first(self, vehicles, factory, driver):
        sports_car = factory.get_metadata_for("SportsCar")

        assert list(driver.loads) == ["Vehicle", "Car", "SportsCar"]
        assert sports_car.parent_name == "Car"
        assert sports_car.parent.parent_name == "Vehicle"
        assert sports_car.inheritance_type is InheritanceType.JOINED
        assert sports_car.discriminator_value == "sports_car"
        assert sports_car.get_identifier() == ["id"]
        assert [a.class_name for a in sports_car.iter_ancestors()] == ["Car", "Vehicle"]
        assert sports_car.get_root_class_name() == "Vehicle"

    def test_loaded_once(self, vehicles, factory, driver):
        first = factory.get_metadata_for("Car")
        second = factory.get_metadata_for("Car")
        factory.get_metadata_for("SportsCar")

        assert first is second
        assert driver.loads == Counter({"Vehicle": 1, "Car": 1, "SportsCar": 1})

    def test_concurrent_requests_share_one_build(self, vehicles, factory, driver):
        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(factory.get_metadata_for, ["SportsCar"] * 16))

        assert all(result is results[0] for result in results)
        assert driver.loads["SportsCar"] == 1
        assert driver.loads["Vehicle"] == 1

    def test_results_are_frozen(self, vehicles, factory):
        car = factory.get_metadata_for("Car")

        assert car.is_finalized
        with pytest.raises(MetadataFrozenError):
            car.add_property(FieldMetadata("wheels"))

    def test_get_all_metadata(self, vehicles, write_mapping, factory):
        write_mapping("Helper.json", {"class": "Helper", "transient": True})

        names = [m.class_name for m in factory.get_all_metadata()]

        assert names == ["Car", "SportsCar", "Vehicle"]
        assert set(factory.get_loaded_metadata()) == {"Car", "SportsCar", "Vehicle"}

    def test_has_metadata_for(self, vehicles, factory):
        assert not factory.has_metadata_for("Car")

        factory.get_metadata_for("Car")

        assert factory.has_metadata_for("Car")
        assert factory.has_metadata_for("Vehicle")
        assert not factory.has_metadata_for("SportsCar")


class TestTransient:
    def test_transient_class_rejected(self, write_mapping, factory):
        write_mapping("Helper.json", {"class": "Helper", "transient": True})

        assert factory.is_transient("Helper")
        with pytest.raises(MappingError):
            factory.get_metadata_for("Helper")

    def test_unknown_class_rejected(self, write_mapping, factory):
        write_mapping("Dog.json", {"class": "Dog", "fields": [{"name": "id", "id": True}]})

        with pytest.raises(MappingError) as exc:
            factory.get_metadata_for("Ghost")
        assert exc.value.class_name == "Ghost"

    def test_transient_ancestor_skipped(self, write_mapping, factory, driver):
        write_mapping("mixed.json", [
            {"class": "Timestamped", "transient": True},
            {"class": "Dog", "extends": "Timestamped", "fields": [{"name": "id", "id": True}]},
        ])

        dog = factory.get_metadata_for("Dog")

        assert dog.parent_name is None
        assert "Timestamped" not in driver.loads
        assert factory.context.entities.is_subclass("Dog", "Timestamped")

    def test_mapped_superclass_parent(self, write_mapping, factory):
        write_mapping("animals.json", [
            {"class": "Animal", "mapped_superclass": True,
             "fields": [{"name": "id", "type": "integer", "id": True}]},
            {"class": "Dog", "extends": "Animal"},
        ])

        dog = factory.get_metadata_for("Dog")

        assert dog.get_identifier() == ["id"]
        assert dog.get_property("id").get_table_name() == "dog"
        assert factory.get_metadata_for("Animal").get_property("id").get_table_name() is None
        assert list(dog.iter_ancestors()) == []


class TestValidation:
    def test_missing_identifier_logged_and_raised(self, write_mapping, factory, caplog):
        write_mapping("Note.json", {"class": "Note", "fields": [{"name": "text"}]})

        with caplog.at_level(logging.ERROR, logger="ormeta.factory"):
            with pytest.raises(MissingIdentifierError):
                factory.get_metadata_for("Note")

        assert "Failed to load metadata for Note" in caplog.text
        assert not factory.has_metadata_for("Note")

    def test_missing_lifecycle_callback(self, write_mapping, factory):
        write_mapping("Dog.json", {
            "class": "Dog",
            "fields": [{"name": "id", "id": True}],
            "lifecycle_callbacks": {"prePersist": ["on_create"]},
        })

        with pytest.raises(LifecycleCallbackNotFoundError):
            factory.get_metadata_for("Dog")

    def test_callback_validation_disabled(self, write_mapping, driver):
        write_mapping("Dog.json", {
            "class": "Dog",
            "fields": [{"name": "id", "id": True}],
            "lifecycle_callbacks": {"prePersist": ["on_create"]},
        })
        factory = MetadataFactory(driver, validate_callbacks=False)

        dog = factory.get_metadata_for("Dog")

        assert dog.get_lifecycle_callbacks("prePersist") == ["on_create"]

    def test_callback_found_on_imported_entity(self, write_mapping, factory):
        write_mapping("Registry.json", {
            "class": "Registry",
            "entity": "collections:OrderedDict",
            "fields": [{"name": "id", "id": True}],
            "lifecycle_callbacks": {"preRemove": ["clear"]},
        })

        registry = factory.get_metadata_for("Registry")

        assert registry.has_lifecycle_callbacks("preRemove")


class TestSetMetadata:
    def test_inject_prebuilt_metadata(self, factory, driver):
        cat = ClassMetadata("Cat")
        cat.add_property(FieldMetadata("id", primary_key=True))

        factory.set_metadata_for("Cat", cat)

        assert cat.is_finalized
        assert factory.get_metadata_for("Cat") is cat
        assert "Cat" not in driver.loads

    def test_name_mismatch(self, factory):
        cat = ClassMetadata("Cat")
        cat.add_property(FieldMetadata("id", primary_key=True))

        with pytest.raises(ValueError):
            factory.set_metadata_for("Dog", cat)

    def test_invalid_metadata_rejected(self, factory):
        with pytest.raises(MissingIdentifierError):
            factory.set_metadata_for("Cat", ClassMetadata("Cat"))
