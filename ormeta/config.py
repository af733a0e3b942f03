# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load all configuration from environment variables / .env file
#   and provide typed config objects to the factory, drivers and CLI.
#
# CLASSES:
# --------
# - MySQLConfig (dataclass)      used by DatabaseDriver
#     host: str          (default "localhost")
#     port: int          (default 3306)
#     user: str          (default "root")
#     password: str      (default "root")
#     database: str      (default "ormeta")
#
# - MongoConfig (dataclass)      used by DocumentDriver
#     host: str          (default "localhost")
#     port: int          (default 27017)
#     user: str | None   (default None)
#     password: str | None (default None)
#     database: str      (default "ormeta")
#     collection: str    (default "entity_mappings")
#
# - MappingConfig (dataclass)
#     driver: str              (default "file"; file | database | document)
#     mapping_dir: str         (default "mappings/")
#     validate_callbacks: bool (default True)
#     log_level: str           (default "WARNING")
#
# - AppConfig (dataclass)
#     mysql: MySQLConfig
#     mongo: MongoConfig
#     mapping: MappingConfig
#
# FUNCTIONS:
# ----------
# - get_config() -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same singleton on repeated calls.
#
# - load_config(env_path=None) -> AppConfig
#     Build a fresh AppConfig (no singleton).
#
# - create_driver(config) -> MappingDriver
#     Instantiate the driver selected by ORMETA_DRIVER.
#
# USAGE:
# ------
#   from ormeta.config import get_config, create_driver
#   config = get_config()
#   driver = create_driver(config)
#
# ==============================================

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from ormeta.drivers import DatabaseDriver, DocumentDriver, FileDriver, MappingDriver

DRIVERS = ("file", "database", "document")


@dataclass
class MySQLConfig:
    """MySQL database configuration."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = "root"
    database: str = "ormeta"


@dataclass
class MongoConfig:
    """MongoDB database configuration."""
    host: str = "localhost"
    port: int = 27017
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "ormeta"
    collection: str = "entity_mappings"


@dataclass
class MappingConfig:
    """Where mappings come from and how strictly they are checked."""
    driver: str = "file"
    mapping_dir: str = "mappings/"
    validate_callbacks: bool = True
    log_level: str = "WARNING"


@dataclass
class AppConfig:
    """Main application configuration."""
    mysql: MySQLConfig = field(default_factory=MySQLConfig)
    mongo: MongoConfig = field(default_factory=MongoConfig)
    mapping: MappingConfig = field(default_factory=MappingConfig)


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# Singleton instance
_config_instance: Optional[AppConfig] = None


def load_config(env_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Build configuration from environment variables / .env file.

    Args:
        env_path: .env file to read (default: the one in the project root)

    Raises:
        ValueError: ORMETA_DRIVER names an unknown driver
    """
    if env_path is None:
        env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    mysql_config = MySQLConfig(
        host=os.getenv("MYSQL_HOST", "localhost"),
        port=int(os.getenv("MYSQL_PORT", "3306")),
        user=os.getenv("MYSQL_USER", "root"),
        password=os.getenv("MYSQL_PASSWORD", "root"),
        database=os.getenv("MYSQL_DATABASE", "ormeta")
    )

    mongo_config = MongoConfig(
        host=os.getenv("MONGO_HOST", "localhost"),
        port=int(os.getenv("MONGO_PORT", "27017")),
        user=os.getenv("MONGO_USER") or None,
        password=os.getenv("MONGO_PASSWORD") or None,
        database=os.getenv("MONGO_DATABASE", "ormeta"),
        collection=os.getenv("MONGO_COLLECTION", "entity_mappings")
    )

    driver = os.getenv("ORMETA_DRIVER", "file").strip().lower()
    if driver not in DRIVERS:
        raise ValueError(f"ORMETA_DRIVER must be one of {', '.join(DRIVERS)}, got '{driver}'")

    mapping_config = MappingConfig(
        driver=driver,
        mapping_dir=os.getenv("ORMETA_MAPPING_DIR", "mappings/"),
        validate_callbacks=_as_bool(os.getenv("ORMETA_VALIDATE_CALLBACKS", "true")),
        log_level=os.getenv("ORMETA_LOG_LEVEL", "WARNING").upper()
    )

    return AppConfig(mysql=mysql_config, mongo=mongo_config, mapping=mapping_config)


def get_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.
    """
    global _config_instance

    if _config_instance is None:
        _config_instance = load_config()

    return _config_instance


def create_driver(config: Optional[AppConfig] = None) -> MappingDriver:
    """Instantiate the mapping driver named by config.mapping.driver."""
    config = config or get_config()

    if config.mapping.driver == "database":
        return DatabaseDriver(
            host=config.mysql.host,
            port=config.mysql.port,
            user=config.mysql.user,
            password=config.mysql.password,
            database=config.mysql.database
        )

    if config.mapping.driver == "document":
        return DocumentDriver(
            host=config.mongo.host,
            port=config.mongo.port,
            database=config.mongo.database,
            collection=config.mongo.collection,
            user=config.mongo.user,
            password=config.mongo.password
        )

    return FileDriver(config.mapping.mapping_dir)
