"""
Database operations - Generic async CRUD functions for all collections
"""
from typing import List, Dict, Optional, Any
from datetime import datetime
from pymongo import ReturnDocument
from roomify.config.database import db_config
from roomify.utils.helpers import to_object_id, utc_now

class DBOperations:
    """Generic database operations for MongoDB collections.

    Bound to the global connection by default; pass a database handle to
    work against another one (tests use an in-memory Motor mock).
    """

    def __init__(self, database=None):
        self._database = database

    def collection(self, collection_name: str):
        if self._database is not None:
            return self._database[collection_name]
        return db_config.get_collection(collection_name)

    async def get_all(
        self,
        collection_name: str,
        filter_query: Dict = None,
        skip: int = 0,
        limit: int = 100,
        sort: Optional[List] = None,
    ) -> List[Dict]:
        """Get all documents from a collection with optional filtering"""
        filter_query = filter_query or {}
        cursor = self.collection(collection_name).find(filter_query)
        if sort:
            cursor = cursor.sort(sort)
        cursor = cursor.skip(skip).limit(limit)
        return await cursor.to_list(length=limit)

    async def get_by_id(self, collection_name: str, doc_id: str) -> Optional[Dict]:
        """Get a single document by ID, None when the id is malformed or unknown"""
        object_id = to_object_id(doc_id)
        if object_id is None:
            return None
        return await self.collection(collection_name).find_one({"_id": object_id})

    async def get_one(self, collection_name: str, filter_query: Dict) -> Optional[Dict]:
        """Get a single document by filter query"""
        return await self.collection(collection_name).find_one(filter_query)

    async def create(self, collection_name: str, document: Dict, now: Optional[datetime] = None) -> Dict:
        """Create a new document"""
        now = now or utc_now()
        document.setdefault("created_at", now)
        document["updated_at"] = now
        result = await self.collection(collection_name).insert_one(document)
        document["_id"] = result.inserted_id
        return document

    async def find_one_and_update(
        self,
        collection_name: str,
        filter_query: Dict,
        update: Dict,
        now: Optional[datetime] = None,
    ) -> Optional[Dict]:
        """Atomically update the first document matching filter_query.

        Returns the document after the update, or None when nothing matched.
        The filter doubles as the precondition of a conditional write.
        """
        update = _stamped(update, now)
        return await self.collection(collection_name).find_one_and_update(
            filter_query,
            update,
            return_document=ReturnDocument.AFTER,
        )

    async def update_many(
        self,
        collection_name: str,
        filter_query: Dict,
        update: Dict,
        now: Optional[datetime] = None,
    ) -> int:
        """Update every matching document, returning the modified count"""
        update = _stamped(update, now)
        result = await self.collection(collection_name).update_many(filter_query, update)
        return result.modified_count

    async def count(self, collection_name: str, filter_query: Dict = None) -> int:
        """Count documents in a collection"""
        filter_query = filter_query or {}
        return await self.collection(collection_name).count_documents(filter_query)

    async def aggregate(self, collection_name: str, pipeline: List[Dict]) -> List[Dict]:
        """Execute aggregation pipeline"""
        cursor = self.collection(collection_name).aggregate(pipeline)
        return await cursor.to_list(length=None)


def _stamped(update: Dict[str, Any], now: Optional[datetime]) -> Dict[str, Any]:
    stamped = dict(update)
    stamped["$set"] = {**update.get("$set", {}), "updated_at": now or utc_now()}
    return stamped

db_ops = DBOperations()
