# ==============================================
# DatabaseDriver
# ==============================================
#
# PURPOSE:
#   Reverse-engineer entity mappings from a live MySQL schema.
#   Nothing is written to the database; the driver only reads
#   INFORMATION_SCHEMA.
#
# WHAT IS MAPPED:
# ---------------
#   - Each base table           → one entity (blog_post → BlogPost)
#   - Each column               → one field (created_at → createdAt)
#   - PRIMARY KEY columns       → identifier (auto_increment → IDENTITY)
#   - Foreign-key columns       → many-to-one associations
#                                 (author_id → author: Author)
#   - Link tables (exactly two foreign keys, every column part of
#     the primary key)          → many-to-many on both entities,
#                                 owned by the first referenced table
#
# CLASS: DatabaseDriver
# ---------------------
#   Constructor:
#   ------------
#   - __init__(host, port, user, password, database, connection=None)
#       Store connection params. Don't connect yet. An open PyMySQL
#       connection may be passed instead.
#
#   Methods:
#   --------
#   - connect() / disconnect()
#   - load_metadata_for_class(), get_all_class_names(), is_transient()
#   - register_entities(entities)
#
#   Context Manager:
#   ----------------
#   - __enter__ / __exit__ for `with DatabaseDriver(...) as driver:` usage.
#
# ==============================================

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

import pymysql
import pymysql.cursors

from ormeta.drivers.base import MappingDriver
from ormeta.mapping import (
    ClassMetadata,
    EntityRegistry,
    FieldMetadata,
    JoinColumnMetadata,
    JoinTableMetadata,
    ManyToManyAssociationMetadata,
    ManyToOneAssociationMetadata,
    MetadataBuildingContext,
    TableMetadata,
    ValueGenerator,
)
from ormeta.mapping.exceptions import DriverError
from ormeta.naming import UnderscoreNamingStrategy

logger = logging.getLogger(__name__)

# MySQL DATA_TYPE -> mapping type name
MYSQL_TYPES = {
    "tinyint": "boolean",
    "smallint": "smallint",
    "mediumint": "integer",
    "int": "integer",
    "integer": "integer",
    "bigint": "bigint",
    "decimal": "decimal",
    "numeric": "decimal",
    "float": "float",
    "double": "float",
    "char": "string",
    "varchar": "string",
    "tinytext": "text",
    "text": "text",
    "mediumtext": "text",
    "longtext": "text",
    "date": "date",
    "datetime": "datetime",
    "timestamp": "datetime",
    "time": "time",
    "json": "json",
    "blob": "blob",
    "longblob": "blob",
    "binary": "binary",
    "varbinary": "binary",
}


@dataclass
class ReflectedTable:
    """Schema information for one table."""
    name: str
    columns: List[Dict[str, Any]] = field(default_factory=list)
    primary_keys: List[str] = field(default_factory=list)
    foreign_keys: Dict[str, Tuple[str, str]] = field(default_factory=dict)  # column -> (table, column)

    def is_link_table(self) -> bool:
        column_names = {c["COLUMN_NAME"] for c in self.columns}
        return (
            len(self.foreign_keys) == 2
            and set(self.foreign_keys) == column_names
            and set(self.primary_keys) == column_names
        )


class DatabaseDriver(MappingDriver):
    def __init__(
        self,
        host: str = "localhost",
        port: int = 3306,
        user: str = "root",
        password: str = "root",
        database: str = "ormeta",
        connection: Any = None,
        naming: Optional[UnderscoreNamingStrategy] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.database = database
        self.connection = connection
        self.naming = naming or UnderscoreNamingStrategy()
        self._entities: Optional[Dict[str, ReflectedTable]] = None
        self._link_tables: List[ReflectedTable] = []

    def connect(self) -> None:
        try:
            self.connection = pymysql.connect(
                host=self.host,
                port=self.port,
                user=self.user,
                password=self.password,
                database=self.database,
            )
        except pymysql.MySQLError as e:
            raise DriverError(f"Could not connect to MySQL at {self.host}:{self.port}: {e}") from e
        logger.info("Connected to MySQL %s:%s/%s", self.host, self.port, self.database)

    def disconnect(self) -> None:
        if self.connection:
            self.connection.close()
            self.connection = None

    def _fetch_all(self, query: str, params: tuple) -> List[Dict[str, Any]]:
        if self.connection is None:
            self.connect()
        try:
            cursor = self.connection.cursor(pymysql.cursors.DictCursor)
            cursor.execute(query, params)
            rows = list(cursor.fetchall())
            cursor.close()
        except pymysql.MySQLError as e:
            raise DriverError(f"Schema reflection failed on '{self.database}': {e}") from e
        return rows

    # ======================================
    # Reflection
    # ======================================
    @property
    def entities(self) -> Dict[str, ReflectedTable]:
        if self._entities is None:
            self._reflect()
        return self._entities

    def _reflect(self) -> None:
        tables: Dict[str, ReflectedTable] = {}

        for row in self._fetch_all(
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = %s AND TABLE_TYPE = 'BASE TABLE' ORDER BY TABLE_NAME",
            (self.database,),
        ):
            tables[row["TABLE_NAME"]] = ReflectedTable(row["TABLE_NAME"])

        for row in self._fetch_all(
            "SELECT TABLE_NAME, COLUMN_NAME, DATA_TYPE, IS_NULLABLE, CHARACTER_MAXIMUM_LENGTH, "
            "COLUMN_KEY, EXTRA FROM INFORMATION_SCHEMA.COLUMNS "
            "WHERE TABLE_SCHEMA = %s ORDER BY TABLE_NAME, ORDINAL_POSITION",
            (self.database,),
        ):
            table = tables.get(row["TABLE_NAME"])
            if table is None:
                continue
            table.columns.append(row)
            if row.get("COLUMN_KEY") == "PRI":
                table.primary_keys.append(row["COLUMN_NAME"])

        for row in self._fetch_all(
            "SELECT TABLE_NAME, COLUMN_NAME, REFERENCED_TABLE_NAME, REFERENCED_COLUMN_NAME "
            "FROM INFORMATION_SCHEMA.KEY_COLUMN_USAGE "
            "WHERE TABLE_SCHEMA = %s AND REFERENCED_TABLE_NAME IS NOT NULL",
            (self.database,),
        ):
            table = tables.get(row["TABLE_NAME"])
            if table is not None:
                table.foreign_keys[row["COLUMN_NAME"]] = (
                    row["REFERENCED_TABLE_NAME"],
                    row["REFERENCED_COLUMN_NAME"],
                )

        self._entities = {}
        self._link_tables = []
        for table in tables.values():
            if table.is_link_table():
                self._link_tables.append(table)
            else:
                self._entities[self.naming.table_to_class_name(table.name)] = table

        logger.info(
            "Reflected %d entities and %d link tables from '%s'",
            len(self._entities), len(self._link_tables), self.database,
        )

    def _entity_for_table(self, table_name: str) -> Optional[str]:
        for name, table in self.entities.items():
            if table.name == table_name:
                return name
        return None

    # ======================================
    # MappingDriver
    # ======================================
    def get_all_class_names(self) -> Set[str]:
        return set(self.entities)

    def is_transient(self, class_name: str) -> bool:
        return class_name not in self.entities

    def register_entities(self, entities: EntityRegistry) -> None:
        for name in self.entities:
            entities.register(name)

    def load_metadata_for_class(
        self,
        class_name: str,
        parent: Optional[ClassMetadata],
        context: MetadataBuildingContext,
    ) -> ClassMetadata:
        table = self.entities.get(class_name)
        if table is None:
            raise DriverError(f"No table found for class '{class_name}'", class_name)

        metadata = ClassMetadata(class_name, parent, context)

        for column in table.columns:
            metadata.add_property(self._property_for_column(metadata, table, column))

        self._add_many_to_many(metadata, table)

        metadata.set_table(TableMetadata(table.name))
        return metadata

    def _property_for_column(self, metadata: ClassMetadata, table: ReflectedTable, column: Dict[str, Any]):
        column_name = column["COLUMN_NAME"]
        nullable = column.get("IS_NULLABLE") == "YES"
        primary_key = column_name in table.primary_keys

        reference = table.foreign_keys.get(column_name)
        target = self._entity_for_table(reference[0]) if reference else None
        if target is not None:
            referenced_column = reference[1]
            name = self.naming.column_to_property_name(self._strip_reference_suffix(column_name, referenced_column))
            if metadata.has_property(name):
                name = self.naming.column_to_property_name(column_name)
            return ManyToOneAssociationMetadata(
                name,
                target,
                primary_key=primary_key,
                join_columns=[JoinColumnMetadata(column_name, referenced_column, nullable=nullable)],
            )

        generator = ValueGenerator("IDENTITY") if "auto_increment" in (column.get("EXTRA") or "") else None
        return FieldMetadata(
            self.naming.column_to_property_name(column_name),
            type_name=MYSQL_TYPES.get(str(column.get("DATA_TYPE", "")).lower(), "string"),
            column_name=column_name,
            primary_key=primary_key,
            nullable=nullable,
            unique=column.get("COLUMN_KEY") == "UNI",
            length=column.get("CHARACTER_MAXIMUM_LENGTH"),
            value_generator=generator,
        )

    @staticmethod
    def _strip_reference_suffix(column_name: str, referenced_column: str) -> str:
        suffix = f"_{referenced_column}"
        if column_name.endswith(suffix) and len(column_name) > len(suffix):
            return column_name[: -len(suffix)]
        return column_name

    def _add_many_to_many(self, metadata: ClassMetadata, table: ReflectedTable) -> None:
        for link in self._link_tables:
            (first_col, first_ref), (second_col, second_ref) = list(link.foreign_keys.items())

            if first_ref[0] == table.name:
                own_col, own_ref, other_col, other_ref, owning = first_col, first_ref, second_col, second_ref, True
            elif second_ref[0] == table.name:
                own_col, own_ref, other_col, other_ref, owning = second_col, second_ref, first_col, first_ref, False
            else:
                continue

            target = self._entity_for_table(other_ref[0])
            if target is None:
                continue

            # Both sides are named after the table on the other end (posts <-> tags)
            name = self._free_name(metadata, self.naming.column_to_property_name(other_ref[0]), link.name)

            if owning:
                association = ManyToManyAssociationMetadata(
                    name,
                    target,
                    inversed_by=self.naming.column_to_property_name(table.name),
                    join_table=JoinTableMetadata(
                        link.name,
                        join_columns=[JoinColumnMetadata(own_col, own_ref[1])],
                        inverse_join_columns=[JoinColumnMetadata(other_col, other_ref[1])],
                    ),
                )
            else:
                association = ManyToManyAssociationMetadata(
                    name,
                    target,
                    mapped_by=self.naming.column_to_property_name(table.name),
                )
            logger.debug("Link table %s maps %s.%s (owning=%s)", link.name, metadata.class_name, name, owning)
            metadata.add_property(association)

    def _free_name(self, metadata: ClassMetadata, name: str, fallback: str) -> str:
        if metadata.has_property(name):
            return self.naming.column_to_property_name(fallback)
        return name

    def __enter__(self):
        if self.connection is None:
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
