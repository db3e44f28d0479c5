"""
Document store backends.

Both backends speak the same small vocabulary: equality filters, a single
ordering field, offset/limit pagination and merge-on-write updates. Documents
go in and come out as plain dicts with an ``id`` key.
"""

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from .config import Settings
from .errors import UpstreamFailure

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    @abstractmethod
    def find(
        self,
        collection: str,
        where: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        ...

    @abstractmethod
    def count(self, collection: str, where: Optional[Dict[str, Any]] = None) -> int:
        ...

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def insert(self, collection: str, doc: Dict[str, Any]) -> str:
        ...

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> bool:
        """Merge ``fields`` into the document. Returns False when it does not exist."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> bool:
        ...

    @abstractmethod
    def distinct(self, collection: str, field: str) -> List[Any]:
        ...

    # Atomic array operations. Each one touches a single array element, so
    # concurrent writers to the same document do not overwrite each other.
    @abstractmethod
    def push(self, collection: str, doc_id: str, field: str, item: Dict[str, Any]) -> bool:
        """Append ``item`` to the array ``field``. Returns False when the document does not exist."""

    @abstractmethod
    def pull(self, collection: str, doc_id: str, field: str, match: Dict[str, Any]) -> bool:
        """Remove the elements of ``field`` matching every key of ``match``. Returns True if one was removed."""

    @abstractmethod
    def set_in_array(
        self, collection: str, doc_id: str, field: str, match: Dict[str, Any], values: Dict[str, Any]
    ) -> bool:
        """Merge ``values`` into the first element of ``field`` matching ``match``. Returns True if one matched."""

    def close(self) -> None:
        pass


# ---------------------------
# In-memory backend
# ---------------------------
def _sort_key(field: str):
    # nulls sort before every value, as MongoDB does
    def key(doc: Dict[str, Any]):
        value = doc.get(field)
        return (value is not None, value if value is not None else 0)
    return key


class InMemoryStore(DocumentStore):
    """Dict-of-dicts store. Iteration order is insertion order."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()

    def _snapshot(self, collection: str) -> List[Dict[str, Any]]:
        with self._lock:
            return [copy.deepcopy(d) for d in self._collections.get(collection, {}).values()]

    @staticmethod
    def _matches(doc: Dict[str, Any], where: Optional[Dict[str, Any]]) -> bool:
        if not where:
            return True
        return all(doc.get(k) == v for k, v in where.items())

    def find(self, collection, where=None, order_by=None, descending=False, offset=0, limit=None):
        docs = [d for d in self._snapshot(collection) if self._matches(d, where)]
        if order_by:
            # sorted() stays stable with reverse=True
            docs = sorted(docs, key=_sort_key(order_by), reverse=descending)
        end = None if limit is None else offset + limit
        return docs[offset:end]

    def count(self, collection, where=None):
        return sum(1 for d in self._snapshot(collection) if self._matches(d, where))

    def get(self, collection, doc_id):
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def insert(self, collection, doc):
        doc_id = str(doc.get("id") or uuid.uuid4().hex)
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy({**doc, "id": doc_id})
        return doc_id

    def update(self, collection, doc_id, fields):
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                return False
            doc.update(copy.deepcopy(fields))
            return True

    def delete(self, collection, doc_id):
        with self._lock:
            return self._collections.get(collection, {}).pop(doc_id, None) is not None

    def distinct(self, collection, field):
        out = []
        for doc in self._snapshot(collection):
            value = doc.get(field)
            if value not in out:
                out.append(value)
        return out

    def push(self, collection, doc_id, field, item):
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                return False
            doc.setdefault(field, []).append(copy.deepcopy(item))
            return True

    def pull(self, collection, doc_id, field, match):
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                return False
            items = doc.get(field) or []
            kept = [e for e in items if not self._matches(e, match)]
            doc[field] = kept
            return len(kept) < len(items)

    def set_in_array(self, collection, doc_id, field, match, values):
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                return False
            for element in doc.get(field) or []:
                if self._matches(element, match):
                    element.update(copy.deepcopy(values))
                    return True
            return False


# ---------------------------
# MongoDB backend
# ---------------------------
def _to_mongo_field(field: str) -> str:
    return "_id" if field == "id" else field


def _serialize_doc(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    out = {}
    for k, v in doc.items():
        if k == "_id":
            out["id"] = str(v)
        elif hasattr(v, "isoformat"):
            out[k] = v.isoformat()
        else:
            out[k] = v
    return out


@contextmanager
def _translate_errors(operation: str):
    try:
        yield
    except PyMongoError as e:
        logger.error("document store %s failed: %s", operation, e, exc_info=True)
        raise UpstreamFailure("Document store unavailable") from e


class MongoStore(DocumentStore):
    def __init__(self, url: str, database: str, timeout_ms: int = 5000):
        self._client = MongoClient(url, serverSelectionTimeoutMS=timeout_ms)
        self._db = self._client[database]

    def _where(self, where: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {_to_mongo_field(k): v for k, v in (where or {}).items()}

    def find(self, collection, where=None, order_by=None, descending=False, offset=0, limit=None):
        with _translate_errors("find"):
            cursor = self._db[collection].find(self._where(where))
            if order_by:
                field = _to_mongo_field(order_by)
                keys = [(field, DESCENDING if descending else ASCENDING)]
                if field != "_id":
                    keys.append(("_id", ASCENDING))
                cursor = cursor.sort(keys)
            if offset:
                cursor = cursor.skip(offset)
            if limit is not None:
                cursor = cursor.limit(limit)
            return [_serialize_doc(d) for d in cursor]

    def count(self, collection, where=None):
        with _translate_errors("count"):
            return self._db[collection].count_documents(self._where(where))

    def get(self, collection, doc_id):
        with _translate_errors("get"):
            return _serialize_doc(self._db[collection].find_one({"_id": doc_id}))

    def insert(self, collection, doc):
        data = dict(doc)
        doc_id = str(data.pop("id", None) or uuid.uuid4().hex)
        with _translate_errors("insert"):
            self._db[collection].insert_one({"_id": doc_id, **data})
        return doc_id

    def update(self, collection, doc_id, fields):
        with _translate_errors("update"):
            result = self._db[collection].update_one({"_id": doc_id}, {"$set": fields})
            return result.matched_count > 0

    def delete(self, collection, doc_id):
        with _translate_errors("delete"):
            return self._db[collection].delete_one({"_id": doc_id}).deleted_count > 0

    def distinct(self, collection, field):
        with _translate_errors("distinct"):
            return self._db[collection].distinct(_to_mongo_field(field))

    def push(self, collection, doc_id, field, item):
        with _translate_errors("push"):
            result = self._db[collection].update_one({"_id": doc_id}, {"$push": {field: item}})
            return result.matched_count > 0

    def pull(self, collection, doc_id, field, match):
        with _translate_errors("pull"):
            result = self._db[collection].update_one({"_id": doc_id}, {"$pull": {field: match}})
            return result.modified_count > 0

    def set_in_array(self, collection, doc_id, field, match, values):
        # positional $ updates the element picked by $elemMatch
        query = {"_id": doc_id, field: {"$elemMatch": match}}
        update = {"$set": {f"{field}.$.{k}": v for k, v in values.items()}}
        with _translate_errors("set_in_array"):
            return self._db[collection].update_one(query, update).matched_count > 0

    def close(self):
        self._client.close()


def build_store(settings: Settings) -> DocumentStore:
    if settings.DATABASE_URL:
        logger.info("using MongoDB store database=%s", settings.DATABASE_NAME)
        return MongoStore(settings.DATABASE_URL, settings.DATABASE_NAME)
    logger.info("DATABASE_URL not set, using in-memory store")
    return InMemoryStore()
