"""
MongoDB bridge: a thin asynchronous facade over a Motor database.

Each operation passes straight through to the driver and logs its request,
result or error with the bridge's tracking code so lines from one bridge
instance can be correlated.
"""

import json
import logging
from collections.abc import Mapping, MutableMapping
from typing import Any, Dict, List, Optional

from pymongo.errors import PyMongoError

from mongodb_bridge import utils
from mongodb_bridge.config import BridgeConfig, build_mongodb_url, default_tracking_code
from mongodb_bridge.db_connection import BridgeConnection
from mongodb_bridge.errors import DocumentIdEmptyError, DocumentIdsNotListError

PARENT_ID_FIELD = "parentId"
DEFAULT_UPDATE_OPTIONS = {"multi": True, "upsert": False}


def _writable(document):
    """PyMongo only writes the assigned _id back into mutable mappings."""
    if isinstance(document, MutableMapping):
        return document
    return dict(document)


class MongodbBridge:
    def __init__(
        self,
        config: Optional[BridgeConfig] = None,
        *,
        logger: Optional[logging.Logger] = None,
        tracer=None,
        connection: Optional[BridgeConnection] = None,
    ):
        self.config = config or BridgeConfig.from_env()
        self.logger = logger or logging.getLogger("mongodb_bridge")
        self.tracer = tracer
        self.tracking_code = self.config.tracking_code or default_tracking_code()
        self.enabled = self.config.enabled
        self.connection = connection or BridgeConnection(self.config)

    @classmethod
    def from_params(cls, params: Optional[dict] = None, logger=None, tracer=None) -> "MongodbBridge":
        """Build a bridge from the host framework's parameter dict."""
        return cls(BridgeConfig.from_params(params), logger=logger, tracer=tracer)

    def get_tracking_code(self) -> str:
        return self.tracking_code

    @property
    def client(self):
        return self.connection.get_client()

    def _collection(self, entity: str):
        return self.connection.get_db()[entity]

    def _info_enabled(self) -> bool:
        return self.logger.isEnabledFor(logging.INFO)

    # --- Diagnostics ---

    def get_service_info(self) -> Dict[str, Any]:
        conf = self.config.redacted()
        return {
            "connection_info": conf,
            "url": build_mongodb_url(
                conf["host"], conf["port"], conf["name"], conf["username"], conf["password"]
            ),
            "collection_defs": dict(self.config.cols),
        }

    def get_service_help(self) -> List[Dict[str, Any]]:
        info = self.get_service_info()
        return [
            {
                "type": "record",
                "title": "MongoDB bridge",
                "label": {
                    "connection_info": "Connection options",
                    "url": "URL",
                    "collection_defs": "Collections",
                },
                "data": {
                    "connection_info": json.dumps(info["connection_info"], indent=2),
                    "url": info["url"],
                    "collection_defs": json.dumps(info["collection_defs"], indent=2),
                },
            }
        ]

    def close(self, forced: bool = False) -> None:
        self.connection.close(forced)

    # --- Administrative ---

    async def stats(self) -> dict:
        return await self.connection.get_db().command("dbStats")

    async def get_collection_names(self) -> List[str]:
        return await self.connection.get_db().list_collection_names()

    async def count_documents(self, entity: str, criteria: Optional[dict] = None) -> int:
        if not isinstance(criteria, Mapping):
            criteria = {}
        return await self._collection(entity).count_documents(criteria)

    # --- Reads ---

    async def find_documents(self, entity: str, criteria: Optional[dict] = None, start: int = 0, limit: int = 0) -> List[dict]:
        """
        Page through documents matching criteria; limit=0 returns every match after start.
        """
        if not isinstance(criteria, Mapping):
            criteria = {}
        cursor = self._collection(entity).find(criteria).skip(int(start or 0)).limit(int(limit or 0))
        return await cursor.to_list(length=None)

    async def get_documents(self, entity: str, start: int = 0, limit: int = 0) -> List[dict]:
        return await self.find_documents(entity, {}, start, limit)

    async def find_one_document(self, entity: str, criteria: dict) -> Optional[dict]:
        try:
            document = await self._collection(entity).find_one(criteria)
        except PyMongoError as exc:
            if self._info_enabled():
                self.logger.info("<%s> - find_one_document(%r, %s) has error: %s",
                                 self.tracking_code, entity, utils.dumps(criteria), exc)
            raise
        if self._info_enabled():
            self.logger.info("<%s> - find_one_document(%r, %s) result: %s",
                             self.tracking_code, entity, utils.dumps(criteria), utils.dumps(document))
        return document

    async def get_document_by_id(self, entity: str, id) -> Optional[dict]:
        """
        Fetch one document by _id.

        Empty ids fail with DocumentIdEmptyError before the driver is touched;
        plain ids are converted to ObjectId.
        """
        if utils.is_empty_id(id):
            raise DocumentIdEmptyError(entity)
        id = utils.to_object_id(id)
        try:
            document = await self._collection(entity).find_one({"_id": id})
        except PyMongoError as exc:
            if self._info_enabled():
                self.logger.info("<%s> - get_document_by_id(%r, %s) has error: %s",
                                 self.tracking_code, entity, id, exc)
            raise
        if self._info_enabled():
            self.logger.info("<%s> - get_document_by_id(%r, %s) result: %s",
                             self.tracking_code, entity, id, utils.dumps(document))
        return document

    async def get_documents_by_ids(self, entity: str, ids) -> List[dict]:
        if self._info_enabled():
            self.logger.info("<%s> + get_documents_by_ids(%r, %s)",
                             self.tracking_code, entity, utils.dumps(ids))
        if not utils.is_id_list(ids):
            raise DocumentIdsNotListError(entity, ids)
        if any(utils.is_empty_id(id) for id in ids):
            raise DocumentIdEmptyError(entity)
        ids = utils.to_object_ids(ids)
        try:
            documents = await self._collection(entity).find({"_id": {"$in": ids}}).to_list(length=None)
        except PyMongoError as exc:
            if self._info_enabled():
                self.logger.info("<%s> - get_documents_by_ids(%r, %s) has error: %s",
                                 self.tracking_code, entity, utils.dumps(ids), exc)
            raise
        if self._info_enabled():
            self.logger.info("<%s> - get_documents_by_ids(%r, %s) result: %s",
                             self.tracking_code, entity, utils.dumps(ids), utils.dumps(documents))
        return documents

    async def get_one_to_many_targets_by_source_id(self, entity: str, source_id_field: str, source_id) -> List[dict]:
        if utils.is_empty_id(source_id):
            raise DocumentIdEmptyError(entity)
        criteria = {source_id_field: utils.to_object_id(source_id)}
        return await self._collection(entity).find(criteria).to_list(length=None)

    # --- Hierarchies ---

    async def get_hierarchical_documents_to_top(self, entity: str, document_id) -> List[dict]:
        """
        Follow parentId links from document_id up to the root.

        The walk ends when the next id is empty or no document matches it; an
        id seen twice also ends it. Returns the chain ordered from the
        starting document upwards.
        """
        documents = []
        visited = set()
        while not utils.is_empty_id(document_id):
            key = str(document_id)
            if key in visited:
                self.logger.warning("<%s> - get_hierarchical_documents_to_top(%r) cycle at %s",
                                    self.tracking_code, entity, key)
                break
            visited.add(key)
            document = await self.get_document_by_id(entity, document_id)
            if not utils.is_document(document):
                break
            documents.append(document)
            document_id = document.get(PARENT_ID_FIELD)
        return documents

    async def get_chain_to_top_of_hierarchical_documents_by_ids(self, entity: str, document_ids) -> List[dict]:
        if not utils.is_id_list(document_ids):
            raise DocumentIdsNotListError(entity, document_ids)
        chains = []
        for document_id in document_ids:
            chain = await self.get_hierarchical_documents_to_top(entity, document_id)
            if chain:
                chains.append({
                    "document_id": document_id,
                    "document_object": chain[0],
                    "document_chain": chain,
                })
        return chains

    # --- Writes ---

    async def insert_document(self, entity: str, documents):
        """
        Insert one document (a mapping) or many (a list).

        Returns what was inserted, each document carrying its _id.
        """
        collection = self._collection(entity)
        try:
            if isinstance(documents, Mapping):
                documents = _writable(documents)
                await collection.insert_one(documents)
            else:
                documents = [_writable(document) for document in documents]
                await collection.insert_many(documents)
        except PyMongoError as exc:
            if self._info_enabled():
                self.logger.info("<%s> - insert documents %s of %r error: %s",
                                 self.tracking_code, utils.dumps(documents), entity, exc)
            raise
        if self._info_enabled():
            self.logger.info("<%s> - insert documents %s of %r successful",
                             self.tracking_code, utils.dumps(documents), entity)
        return documents

    async def update_document(self, entity: str, criteria: dict, data: dict, options: Optional[dict] = None) -> dict:
        """
        Apply ``$set: data`` to documents matching criteria.

        Default options update every match and never upsert.
        """
        options = options or dict(DEFAULT_UPDATE_OPTIONS)
        collection = self._collection(entity)
        update = collection.update_many if options.get("multi") else collection.update_one
        try:
            result = await update(criteria, {"$set": data}, upsert=bool(options.get("upsert")))
        except PyMongoError as exc:
            if self._info_enabled():
                self.logger.info("<%s> - update %r document: %s with options %s and criteria %s has error: %s",
                                 self.tracking_code, entity, utils.dumps(data), utils.dumps(options),
                                 utils.dumps(criteria), exc)
            raise
        if self._info_enabled():
            self.logger.info("<%s> - update %r document: %s with options %s and criteria %s successful: %s",
                             self.tracking_code, entity, utils.dumps(data), utils.dumps(options),
                             utils.dumps(criteria), utils.dumps(result.raw_result))
        return result.raw_result

    async def delete_document(self, entity: str, criteria: dict) -> dict:
        try:
            result = await self._collection(entity).delete_many(criteria)
        except PyMongoError as exc:
            if self._info_enabled():
                self.logger.info("<%s> - delete %r document with criteria %s has error: %s",
                                 self.tracking_code, entity, utils.dumps(criteria), exc)
            raise
        if self._info_enabled():
            self.logger.info("<%s> - delete %r document with criteria %s result: %s",
                             self.tracking_code, entity, utils.dumps(criteria), utils.dumps(result.raw_result))
        return result.raw_result

    # --- Summary ---

    async def get_document_summary(self) -> Dict[str, Dict[str, Any]]:
        """
        Count documents in every configured collection that exists.

        Returns parallel ``label`` and ``count`` maps keyed by physical
        collection name. Counts run one collection at a time.
        """
        existing = set(await self.get_collection_names())
        coldefs = self.get_service_info()["collection_defs"]
        names = [name for name in dict.fromkeys(coldefs.values()) if name in existing]
        labels = {}
        counts = {}
        for name in names:
            counts[name] = await self.count_documents(name)
            labels[name] = name
        return {"label": labels, "count": counts}
