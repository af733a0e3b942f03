# ==============================================
# DocumentDriver
# ==============================================
#
# PURPOSE:
#   Read mapping descriptors stored as documents in a MongoDB
#   collection (one document per class, same shape as the JSON
#   descriptors, see descriptor.py).
#
# CLASS: DocumentDriver
# ---------------------
#   Constructor:
#   ------------
#   - __init__(host, port, database, collection="entity_mappings",
#              user=None, password=None, mongo_collection=None)
#       Store connection params. Don't connect yet. A ready
#       collection object may be passed instead.
#
#   Methods:
#   --------
#   - connect() / disconnect()
#   - __enter__ / __exit__ for `with DocumentDriver(...) as driver:`
#
# ==============================================

import logging
from typing import Any, Dict, List, Optional

from pymongo import MongoClient as PyMongoClient
from pymongo.errors import PyMongoError

from ormeta.drivers.descriptor import DescriptorDriver
from ormeta.mapping.exceptions import DriverError
from ormeta.naming import UnderscoreNamingStrategy

logger = logging.getLogger(__name__)


class DocumentDriver(DescriptorDriver):
    def __init__(
        self,
        host: str = "localhost",
        port: int = 27017,
        database: str = "ormeta",
        collection: str = "entity_mappings",
        user: Optional[str] = None,
        password: Optional[str] = None,
        mongo_collection: Any = None,
        naming: Optional[UnderscoreNamingStrategy] = None,
    ):
        super().__init__(naming)
        self.host = host
        self.port = port
        self.database = database
        self.collection_name = collection
        self.user = user
        self.password = password
        self.client = None
        self.collection = mongo_collection

    def connect(self) -> None:
        if self.user and self.password:
            uri = f"mongodb://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"
        else:
            uri = f"mongodb://{self.host}:{self.port}/{self.database}"
        try:
            self.client = PyMongoClient(uri)
            self.client.admin.command('ping')
        except PyMongoError as e:
            self.disconnect()
            raise DriverError(f"Could not connect to MongoDB at {self.host}:{self.port}: {e}") from e
        self.collection = self.client[self.database][self.collection_name]
        logger.info("Connected to MongoDB %s:%s/%s", self.host, self.port, self.database)

    def disconnect(self) -> None:
        if self.client:
            self.client.close()
            self.client = None

    def _fetch_descriptors(self) -> List[Dict[str, Any]]:
        if self.collection is None:
            self.connect()
        try:
            return list(self.collection.find({}, {"_id": 0}))
        except PyMongoError as e:
            raise DriverError(f"Cannot read mapping collection '{self.collection_name}': {e}") from e

    def __enter__(self):
        if self.collection is None:
            self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()
