# ==============================================
# CLI: Command Line Entry Point
# ==============================================
#
# PURPOSE:
#   Inspect and check entity mappings from the shell.
#
# COMMANDS:
# ---------
# 1. List every mapped class:
#    python -m ormeta.cli list
#
# 2. Show the metadata of one class:
#    python -m ormeta.cli show Dog
#    python -m ormeta.cli show Dog --json
#
# 3. Build all metadata and report mapping errors:
#    python -m ormeta.cli validate
#
# GLOBAL OPTIONS:
# ---------------
#   --driver file|database|document   (default: ORMETA_DRIVER)
#   --mapping-dir PATH                (default: ORMETA_MAPPING_DIR)
#   --log-level LEVEL                 (default: ORMETA_LOG_LEVEL)
#
# EXIT CODES:
# -----------
#   0 on success, 1 when any mapping error was found.
#
# ==============================================

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from ormeta.config import DRIVERS, create_driver, get_config
from ormeta.factory import MetadataFactory
from ormeta.mapping import ClassMetadata, PropertyKind
from ormeta.mapping.exceptions import MappingError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ormeta", description="Inspect entity mapping metadata")
    parser.add_argument("--driver", choices=DRIVERS, help="Mapping source")
    parser.add_argument("--mapping-dir", help="Directory of JSON mapping files (file driver)")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, WARNING...)")

    commands = parser.add_subparsers(dest="command", required=True)
    commands.add_parser("list", help="List mapped classes")

    show = commands.add_parser("show", help="Show the metadata of one class")
    show.add_argument("class_name")
    show.add_argument("--json", action="store_true", help="Print the serialized metadata")

    commands.add_parser("validate", help="Build every class and report errors")
    return parser


def print_metadata(metadata: ClassMetadata) -> None:
    print("=" * 60)
    print(f"{metadata.class_name}")
    print("=" * 60)

    if metadata.is_mapped_superclass:
        print("   Mapped superclass")
    if metadata.is_embedded_class:
        print("   Embedded class")
    print(f"   Table:       {metadata.get_table_name() or '-'}")
    print(f"   Parent:      {metadata.parent_name or '-'}")
    print(f"   Identifier:  {', '.join(metadata.identifier) or '-'}")
    print(f"   Inheritance: {metadata.inheritance_type.value}")
    if metadata.discriminator_column is not None:
        print(f"   Discriminator: {metadata.discriminator_column.get_column_name()} "
              f"= {metadata.discriminator_value!r}")
        for value, class_name in metadata.discriminator_map.items():
            print(f"      {value!r} → {class_name}")
    if metadata.is_versioned():
        print(f"   Version:     {metadata.version_property.get_name()}")
    if metadata.read_only:
        print("   Read only")

    print("\n   Properties:")
    for name, property in metadata.iter_properties():
        inherited = " (inherited)" if metadata.is_inherited_property(name) else ""
        if property.kind is PropertyKind.FIELD:
            print(f"   - {name}: {property.get_type_name()} → {property.get_column_name()}{inherited}")
        elif property.kind is PropertyKind.TRANSIENT:
            print(f"   - {name}: transient{inherited}")
        else:
            side = "owning" if property.is_owning_side() else "inverse"
            print(f"   - {name}: {property.type_key} → {property.get_target_entity()} ({side}){inherited}")

    for event, methods in metadata.lifecycle_callbacks.items():
        print(f"   @{event}: {', '.join(methods)}")


def cmd_list(factory: MetadataFactory) -> int:
    names = sorted(factory.driver.get_all_class_names())
    for name in names:
        print(f"   - {name}")
    print(f"\n✓ {len(names)} mapped classes")
    return 0


def cmd_show(factory: MetadataFactory, class_name: str, as_json: bool = False) -> int:
    metadata = factory.get_metadata_for(class_name)
    if as_json:
        print(json.dumps(metadata.to_dict(), indent=2, default=str))
    else:
        print_metadata(metadata)
    return 0


def cmd_validate(factory: MetadataFactory) -> int:
    errors = 0
    names = sorted(factory.driver.get_all_class_names())

    for name in names:
        try:
            factory.get_metadata_for(name)
            print(f"   ✓ {name}")
        except MappingError as e:
            errors += 1
            print(f"   ✗ {name}: {e}")

    print("\n" + "=" * 60)
    if errors:
        print(f"✗ {errors} of {len(names)} classes have mapping errors")
    else:
        print(f"✓ All {len(names)} classes are valid")
    print("=" * 60)
    return 1 if errors else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = get_config()
    mapping = config.mapping
    if args.driver:
        mapping = replace(mapping, driver=args.driver)
    if args.mapping_dir:
        mapping = replace(mapping, mapping_dir=args.mapping_dir)
    if args.log_level:
        mapping = replace(mapping, log_level=args.log_level.upper())
    config = replace(config, mapping=mapping)

    logging.basicConfig(
        level=getattr(logging, mapping.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    factory = MetadataFactory(create_driver(config), validate_callbacks=mapping.validate_callbacks)

    try:
        if args.command == "list":
            return cmd_list(factory)
        if args.command == "show":
            return cmd_show(factory, args.class_name, args.json)
        return cmd_validate(factory)
    except MappingError as e:
        print(f"✗ Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
