# ==============================================
# Tests for ClassMetadata
# ==============================================
#
# Inheritance copy-down, identifier rules, table back-fill,
# ancestors, callbacks / listeners and the frozen state.
#
# ==============================================

import logging

import pytest

from ormeta.mapping import (
    CacheMetadata,
    ChangeTrackingPolicy,
    ClassMetadata,
    CompositeKeyGeneratorConflictError,
    DuplicatePropertyError,
    DuplicateVersionPropertyError,
    EntityListenerClassNotFoundError,
    EntityListenerMethodNotFoundError,
    FieldMetadata,
    InheritanceType,
    InvalidChangeTrackingPolicyError,
    InvalidInheritanceTypeError,
    JoinColumnMetadata,
    LifecycleCallbackNotFoundError,
    ManyToOneAssociationMetadata,
    MappingError,
    MetadataFrozenError,
    MissingFieldNameError,
    MissingIdentifierError,
    NoIdentifierDefinedError,
    OneToManyAssociationMetadata,
    ParentConflictError,
    SingleIdOnCompositeKeyError,
    TableMetadata,
    ValueGenerator,
)


class DogEntity:
    def on_create(self):
        pass


class AuditListener:
    def post_load(self, entity):
        pass


class TestDogAndAnimal:
    """Mapped superclass Animal(id, name) → Dog stored in 'dogs'."""

    def test_end_to_end(self, context, animal):
        dog = ClassMetadata("Dog", animal, context)
        dog.set_table(TableMetadata("dogs"))

        assert dog.get_identifier() == ["id"]
        assert dog.get_table_name() == "dogs"
        assert dog.get_property("id").get_table_name() == "dogs"
        assert dog.get_property("name").get_table_name() == "dogs"
        assert dog.is_inherited_property("name")

    def test_mapped_superclass_properties_are_copied(self, context, animal):
        dog = ClassMetadata("Dog", animal, context)
        dog.set_table(TableMetadata("dogs"))

        assert dog.get_property("name") is not animal.get_property("name")
        assert animal.get_property("name").get_table_name() is None
        assert dog.get_property("name").declaring_class is animal

    def test_two_subclasses_resolve_their_own_tables(self, context, animal):
        dog = ClassMetadata("Dog", animal, context)
        cat = ClassMetadata("Cat", animal, context)
        dog.set_table(TableMetadata("dogs"))
        cat.set_table(TableMetadata("cats"))

        assert dog.get_property("name").get_table_name() == "dogs"
        assert cat.get_property("name").get_table_name() == "cats"

    def test_every_parent_property_is_visible(self, context, animal):
        dog = ClassMetadata("Dog", animal, context)

        parent_names = [name for name, _ in animal.iter_properties()]
        child_names = [name for name, _ in dog.iter_properties()]
        assert parent_names == child_names

    def test_shadowing_a_parent_property_fails(self, context, animal):
        dog = ClassMetadata("Dog", context=context)
        dog.add_property(FieldMetadata("name"))

        with pytest.raises(DuplicatePropertyError):
            dog.set_parent(animal)

    def test_repository_inherited_from_mapped_superclass(self, context, animal):
        animal.set_custom_repository_class_name("app.repos.AnimalRepository")
        dog = ClassMetadata("Dog", animal, context)

        assert dog.get_custom_repository_class_name() == "app.repos.AnimalRepository"

    def test_own_properties_are_not_inherited(self, context, animal):
        dog = ClassMetadata("Dog", animal, context)
        dog.add_property(FieldMetadata("breed"))

        assert not dog.is_inherited_property("breed")
        assert not dog.is_inherited_property("missing")


class TestConcreteParent:
    def test_properties_are_shared(self, context, vehicle):
        car = ClassMetadata("Car", vehicle, context)

        assert car.get_property("id") is vehicle.get_property("id")
        assert car.get_identifier() == ["id"]
        assert car.inheritance_type is InheritanceType.JOINED

    def test_repository_not_inherited_from_entity(self, context, vehicle):
        vehicle.set_custom_repository_class_name("app.repos.VehicleRepository")
        car = ClassMetadata("Car", vehicle, context)

        assert car.get_custom_repository_class_name() is None

    def test_cache_is_duplicated(self, context, vehicle):
        vehicle.set_cache(CacheMetadata("READ_WRITE", "vehicles"))
        car = ClassMetadata("Car", vehicle, context)

        assert car.cache == vehicle.cache
        assert car.cache is not vehicle.cache

    def test_callbacks_and_listeners_are_copied(self, context, vehicle):
        vehicle.add_lifecycle_callback("prePersist", "touch")
        vehicle.add_entity_listener("postLoad", AuditListener, "post_load")
        car = ClassMetadata("Car", vehicle, context)

        car.add_lifecycle_callback("prePersist", "check")
        assert car.get_lifecycle_callbacks("prePersist") == ["touch", "check"]
        assert vehicle.get_lifecycle_callbacks("prePersist") == ["touch"]
        assert car.entity_listeners == vehicle.entity_listeners

    def test_version_property_is_inherited(self, context, vehicle):
        vehicle.add_property(FieldMetadata("version", type_name="integer", versioned=True))
        car = ClassMetadata("Car", vehicle, context)

        assert car.is_versioned()
        assert car.version_property is vehicle.version_property


class TestAddProperty:
    def test_missing_name(self):
        with pytest.raises(MissingFieldNameError):
            ClassMetadata("Dog").add_property(FieldMetadata(""))

    def test_declaring_class_stamped(self):
        metadata = ClassMetadata("Dog")
        field = FieldMetadata("name")
        metadata.add_property(field)

        assert field.declaring_class is metadata

    def test_column_index(self):
        metadata = ClassMetadata("Dog")
        metadata.add_property(FieldMetadata("firstName", column_name="first_name"))
        metadata.add_property(
            ManyToOneAssociationMetadata("owner", "Person", join_columns=[JoinColumnMetadata("owner_id")])
        )
        metadata.add_property(OneToManyAssociationMetadata("puppies", "Dog", mapped_by="mother"))

        assert metadata.field_names == {"first_name": "firstName", "owner_id": "owner"}
        assert metadata.check_property_duplication("owner_id")
        assert not metadata.check_property_duplication("puppies")

    def test_identifier_keeps_first_added_order(self):
        metadata = ClassMetadata("Line")
        metadata.add_property(FieldMetadata("orderId", primary_key=True))
        metadata.add_property(FieldMetadata("label"))
        metadata.add_property(FieldMetadata("position", primary_key=True))

        assert metadata.get_identifier() == ["orderId", "position"]
        assert metadata.is_identifier_composite()

    def test_identifier_order_across_ancestors(self, context):
        parent = ClassMetadata("Tenanted", context=context)
        parent.set_mapped_superclass()
        parent.add_property(FieldMetadata("tenant", primary_key=True))

        child = ClassMetadata("Account", parent, context)
        child.add_property(FieldMetadata("code", primary_key=True))

        assert child.get_identifier() == ["tenant", "code"]

    def test_second_version_field_rejected(self):
        metadata = ClassMetadata("Dog")
        metadata.add_property(FieldMetadata("version", versioned=True))

        with pytest.raises(DuplicateVersionPropertyError):
            metadata.add_property(FieldMetadata("revision", versioned=True))
        assert not metadata.has_property("revision")

    def test_has_field_and_get_column(self):
        metadata = ClassMetadata("Dog")
        field = FieldMetadata("firstName", column_name="first_name")
        metadata.add_property(field)
        metadata.add_property(ManyToOneAssociationMetadata("owner", "Person"))

        assert metadata.has_field("firstName")
        assert not metadata.has_field("owner")
        assert metadata.get_column("first_name") is field
        assert metadata.get_column("missing") is None


class TestSetTable:
    def test_back_fills_only_missing_table_names(self):
        metadata = ClassMetadata("Dog")
        metadata.add_property(FieldMetadata("name"))
        metadata.add_property(FieldMetadata("secret", table_name="dog_secrets"))
        owner_column = JoinColumnMetadata("owner_id")
        metadata.add_property(ManyToOneAssociationMetadata("owner", "Person", join_columns=[owner_column]))
        inverse_column = JoinColumnMetadata("unused_id")
        metadata.add_property(
            ManyToOneAssociationMetadata("rival", "Dog", mapped_by="rival", join_columns=[inverse_column])
        )

        metadata.set_table(TableMetadata("dogs", "zoo"))

        assert metadata.get_property("name").get_table_name() == "dogs"
        assert metadata.get_property("secret").get_table_name() == "dog_secrets"
        assert owner_column.table_name == "dogs"
        assert inverse_column.table_name is None
        assert metadata.get_schema_name() == "zoo"
        assert metadata.get_temporary_id_table_name() == "zoo_dogs_id_tmp"


class TestIdentifierValidation:
    def test_missing_identifier(self):
        metadata = ClassMetadata("Dog")
        metadata.add_property(FieldMetadata("name"))

        with pytest.raises(MissingIdentifierError) as exc:
            metadata.validate_identifier()
        assert exc.value.class_name == "Dog"

    def test_mapped_superclass_and_embeddable_need_no_identifier(self):
        superclass = ClassMetadata("Base")
        superclass.set_mapped_superclass()
        embeddable = ClassMetadata("Address")
        embeddable.set_embedded_class()

        superclass.validate_identifier()
        embeddable.validate_identifier()

    def test_generator_on_composite_key(self):
        metadata = ClassMetadata("Line")
        metadata.add_property(FieldMetadata("orderId", primary_key=True))
        metadata.add_property(FieldMetadata("position", primary_key=True))
        metadata.add_property(
            FieldMetadata("serial", primary_key=True, value_generator=ValueGenerator("IDENTITY"))
        )

        with pytest.raises(CompositeKeyGeneratorConflictError):
            metadata.validate_identifier()

    def test_generator_on_single_key_is_fine(self, vehicle):
        vehicle.validate_identifier()

    def test_single_identifier_helpers(self):
        empty = ClassMetadata("Empty")
        with pytest.raises(NoIdentifierDefinedError):
            empty.get_single_identifier_field_name()

        composite = ClassMetadata("Line")
        composite.add_property(FieldMetadata("a", primary_key=True))
        composite.add_property(FieldMetadata("b", primary_key=True))
        with pytest.raises(SingleIdOnCompositeKeyError):
            composite.get_single_identifier_field_name()
        assert composite.is_identifier("b")

    def test_single_identifier(self, vehicle):
        assert vehicle.get_single_identifier_field_name() == "id"
        assert vehicle.is_identifier("id")
        assert not vehicle.is_identifier("name")


class TestIdentifierColumns:
    def test_join_column_type_comes_from_target(self):
        customer = ClassMetadata("Customer")
        customer.add_property(FieldMetadata("id", type_name="bigint", primary_key=True))

        join_column = JoinColumnMetadata("customer_id", "id")
        order = ClassMetadata("Order")
        order.add_property(
            ManyToOneAssociationMetadata("customer", "Customer", primary_key=True, join_columns=[join_column])
        )
        order.add_property(FieldMetadata("number", type_name="integer", primary_key=True))

        class Factory:
            def get_metadata_for(self, class_name):
                assert class_name == "Customer"
                return customer

        columns = order.get_identifier_columns(Factory())

        assert list(columns) == ["customer_id", "number"]
        assert columns["customer_id"].type_name == "bigint"
        assert join_column.type_name is None

    def test_without_factory(self, vehicle):
        columns = vehicle.get_identifier_columns()
        assert list(columns) == ["id"]


class TestInheritanceType:
    def test_accepts_enum_or_string(self):
        metadata = ClassMetadata("Vehicle")
        metadata.set_inheritance_type("SINGLE_TABLE")
        assert metadata.inheritance_type is InheritanceType.SINGLE_TABLE

    def test_invalid_value(self):
        with pytest.raises(InvalidInheritanceTypeError):
            ClassMetadata("Vehicle").set_inheritance_type("NESTED")


class TestAncestors:
    @pytest.fixture
    def hierarchy(self, context):
        timestamped = ClassMetadata("Timestamped", context=context)
        timestamped.set_mapped_superclass()
        timestamped.add_property(FieldMetadata("createdAt", type_name="datetime"))

        root = ClassMetadata("Vehicle", timestamped, context)
        root.add_property(FieldMetadata("id", primary_key=True))
        car = ClassMetadata("Car", root, context)
        sports_car = ClassMetadata("SportsCar", car, context)
        context.metadata.register(sports_car)
        return timestamped, root, car, sports_car

    def test_nearest_first_skipping_mapped_superclasses(self, hierarchy):
        _, _, _, sports_car = hierarchy

        assert [a.class_name for a in sports_car.iter_ancestors()] == ["Car", "Vehicle"]

    def test_root_class(self, hierarchy):
        timestamped, root, car, sports_car = hierarchy

        assert sports_car.get_root_class_name() == "Vehicle"
        assert root.get_root_class_name() == "Vehicle"
        assert root.is_root_entity()
        assert not car.is_root_entity()

    def test_ancestors_are_lazy_and_restartable(self, hierarchy):
        _, _, _, sports_car = hierarchy

        first = sports_car.iter_ancestors()
        assert next(first).class_name == "Car"
        assert [a.class_name for a in sports_car.iter_ancestors()] == ["Car", "Vehicle"]

    def test_dangling_parent(self, caplog):
        orphan = ClassMetadata("Orphan")
        orphan.parent_name = "Ghost"

        with caplog.at_level(logging.WARNING):
            assert list(orphan.iter_ancestors()) == []
        assert "Ghost" in caplog.text


class TestCallbacksAndListeners:
    def test_callbacks_deduplicated(self):
        metadata = ClassMetadata("Dog")
        metadata.add_lifecycle_callback("prePersist", "on_create")
        metadata.add_lifecycle_callback("prePersist", "on_create")

        assert metadata.has_lifecycle_callbacks("prePersist")
        assert not metadata.has_lifecycle_callbacks("postLoad")
        assert metadata.get_lifecycle_callbacks("prePersist") == ["on_create"]

    def test_validate_callbacks(self, context):
        context.entities.register("Dog", DogEntity)
        metadata = ClassMetadata("Dog", context=context)
        metadata.add_lifecycle_callback("prePersist", "on_create")
        metadata.validate_lifecycle_callbacks(context.entities)

        metadata.add_lifecycle_callback("preUpdate", "on_update")
        with pytest.raises(LifecycleCallbackNotFoundError):
            metadata.validate_lifecycle_callbacks(context.entities)

    def test_listener_class(self):
        metadata = ClassMetadata("Dog")
        metadata.add_entity_listener("postLoad", AuditListener, "post_load")
        metadata.add_entity_listener("postLoad", AuditListener, "post_load")

        assert metadata.entity_listeners == {
            "postLoad": [{"class": f"{__name__}.AuditListener", "method": "post_load"}]
        }

    def test_listener_import_path(self):
        metadata = ClassMetadata("Dog")
        metadata.add_entity_listener("preRemove", "collections:OrderedDict", "clear")

        assert metadata.entity_listeners["preRemove"] == [{"class": "collections:OrderedDict", "method": "clear"}]

    def test_unknown_listener_class(self):
        with pytest.raises(EntityListenerClassNotFoundError):
            ClassMetadata("Dog").add_entity_listener("postLoad", "no_such_module:Listener", "post_load")

    def test_unknown_listener_method(self):
        with pytest.raises(EntityListenerMethodNotFoundError):
            ClassMetadata("Dog").add_entity_listener("postLoad", AuditListener, "missing")


class TestFinalize:
    def test_finalize_validates_identifier(self):
        metadata = ClassMetadata("Dog")

        with pytest.raises(MissingIdentifierError):
            metadata.finalize()
        assert not metadata.is_finalized

    def test_mutators_rejected_after_finalize(self, vehicle):
        vehicle.finalize()

        assert vehicle.is_finalized
        with pytest.raises(MetadataFrozenError):
            vehicle.add_property(FieldMetadata("color"))
        with pytest.raises(MetadataFrozenError):
            vehicle.set_table(TableMetadata("cars"))
        with pytest.raises(MetadataFrozenError):
            vehicle.as_read_only()

    def test_columns_iterator_is_idempotent(self, vehicle):
        vehicle.add_property(FieldMetadata("color"))
        vehicle.finalize()

        assert list(vehicle.iter_columns()) == list(vehicle.iter_columns())
        assert [name for name, _ in vehicle.iter_columns()] == ["id", "color"]

    def test_finalize_twice_is_harmless(self, vehicle):
        assert vehicle.finalize() is vehicle.finalize()

    def test_property_setters_rejected_after_finalize(self, vehicle):
        vehicle.finalize()
        id_field = vehicle.get_property("id")

        assert id_field.is_frozen
        with pytest.raises(MetadataFrozenError):
            id_field.set_table_name("hijacked")
        with pytest.raises(MetadataFrozenError):
            id_field.set_primary_key(False)
        assert id_field.get_table_name() == "vehicles"
        assert id_field.is_primary_key()

    def test_copy_of_frozen_property_is_mutable(self, vehicle):
        vehicle.finalize()

        duplicate = vehicle.get_property("id").copy()
        duplicate.set_table_name("archive")

        assert duplicate.get_table_name() == "archive"
        assert vehicle.get_property("id").get_table_name() == "vehicles"


class TestSharedPropertyBackFill:
    @pytest.fixture
    def base(self, context):
        """Concrete entity without a table of its own."""
        metadata = ClassMetadata("Base", context=context)
        metadata.add_property(FieldMetadata("id", type_name="integer", primary_key=True))
        metadata.add_property(FieldMetadata("revision", type_name="integer", versioned=True))
        metadata.add_property(
            ManyToOneAssociationMetadata("owner", "Person", join_columns=[JoinColumnMetadata("owner_id")])
        )
        return metadata

    def test_finalized_parent_left_untouched(self, context, base):
        base.finalize()
        child = ClassMetadata("Child", base, context)

        child.set_table(TableMetadata("children"))

        assert base.get_property("id").get_table_name() is None
        assert base.get_property("owner").get_join_columns()[0].table_name is None
        assert child.get_property("id").get_table_name() == "children"
        assert child.get_property("owner").get_join_columns()[0].table_name == "children"
        assert child.get_property("id") is not base.get_property("id")
        assert child.get_property("id").declaring_class is base
        assert child.is_inherited_property("id")

    def test_unfinalized_parent_left_untouched(self, context, base):
        child = ClassMetadata("Child", base, context)

        child.set_table(TableMetadata("children"))

        assert base.get_property("id").get_table_name() is None
        assert child.get_property("id").get_table_name() == "children"

    def test_version_property_follows_the_copy(self, context, base):
        base.finalize()
        child = ClassMetadata("Child", base, context)

        child.set_table(TableMetadata("children"))

        assert child.version_property is child.get_property("revision")
        assert base.version_property is base.get_property("revision")

    def test_parent_with_table_stays_shared(self, context, vehicle):
        vehicle.finalize()
        car = ClassMetadata("Car", vehicle, context)

        car.set_table(TableMetadata("cars"))

        assert car.get_property("id") is vehicle.get_property("id")
        assert car.get_property("id").get_table_name() == "vehicles"


class TestParentRegistration:
    def test_stale_registration_superseded(self, context):
        stale = ClassMetadata("Animal", context=context)
        stale.set_mapped_superclass()
        context.metadata.register(stale)

        animal = ClassMetadata("Animal", context=context)
        animal.add_property(FieldMetadata("id", primary_key=True))
        animal.set_table(TableMetadata("animals"))
        dog = ClassMetadata("Dog", animal, context)

        assert dog.parent is animal
        assert context.metadata.get("Animal") is animal
        assert list(dog.iter_ancestors()) == [animal]
        assert dog.get_root_class_name() == "Animal"
        assert not dog.is_root_entity()

    def test_finalized_registration_conflict(self, context):
        registered = ClassMetadata("Animal", context=context)
        registered.add_property(FieldMetadata("id", primary_key=True))
        registered.finalize()
        context.metadata.register(registered)

        other = ClassMetadata("Animal", context=context)
        other.add_property(FieldMetadata("id", primary_key=True))

        with pytest.raises(ParentConflictError) as exc:
            ClassMetadata("Dog", other, context)
        assert exc.value.parent_name == "Animal"
        assert context.metadata.get("Animal") is registered


class TestChangeTrackingPolicy:
    def test_accepts_enum_or_string(self):
        metadata = ClassMetadata("Vehicle")
        metadata.set_change_tracking_policy("NOTIFY")
        assert metadata.change_tracking_policy is ChangeTrackingPolicy.NOTIFY

    def test_invalid_value(self):
        with pytest.raises(InvalidChangeTrackingPolicyError) as exc:
            ClassMetadata("Vehicle").set_change_tracking_policy("BOGUS")

        assert isinstance(exc.value, MappingError)
        assert exc.value.class_name == "Vehicle"
