"""MongoDB access for the complaint desk.

Every helper raises ``StorageError`` when the database is unavailable or the
driver fails, so callers only ever deal with the application error taxonomy.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Union, List

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from config import DATABASE_URL, DATABASE_NAME
from errors import DuplicateRecordError, StorageError

logger = logging.getLogger(__name__)

_client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    try:
        _client = MongoClient(DATABASE_URL)
        db = _client[DATABASE_NAME]
    except PyMongoError as e:
        logger.error(f"Could not create MongoDB client: {e}")
        _client = None
        db = None


def _require_db():
    if db is None:
        raise StorageError("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db


def _now():
    return datetime.now(timezone.utc)


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    """Insert a document, stamping createdAt/updatedAt. Returns the new _id as str."""
    database = _require_db()
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = data.copy()
    data_dict['createdAt'] = _now()
    data_dict['updatedAt'] = data_dict['createdAt']
    try:
        result = database[collection_name].insert_one(data_dict)
    except DuplicateKeyError as e:
        raise DuplicateRecordError(str(e)) from e
    except PyMongoError as e:
        raise StorageError(str(e)) from e
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None,
                  sort: Optional[list] = None, limit: Optional[int] = None) -> List[dict]:
    database = _require_db()
    try:
        cursor = database[collection_name].find(filter_dict or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)
    except PyMongoError as e:
        raise StorageError(str(e)) from e


def find_document(collection_name: str, filter_dict: dict) -> Optional[dict]:
    database = _require_db()
    try:
        return database[collection_name].find_one(filter_dict)
    except PyMongoError as e:
        raise StorageError(str(e)) from e


def update_document(collection_name: str, filter_dict: dict, fields: dict) -> Optional[dict]:
    """Set ``fields`` on the first match and return the updated document, or None."""
    database = _require_db()
    update_fields = dict(fields)
    update_fields['updatedAt'] = _now()
    try:
        return database[collection_name].find_one_and_update(
            filter_dict,
            {"$set": update_fields},
            return_document=ReturnDocument.AFTER,
        )
    except PyMongoError as e:
        raise StorageError(str(e)) from e


def delete_document(collection_name: str, filter_dict: dict) -> bool:
    database = _require_db()
    try:
        result = database[collection_name].delete_one(filter_dict)
    except PyMongoError as e:
        raise StorageError(str(e)) from e
    return result.deleted_count > 0


def ensure_indexes() -> None:
    database = _require_db()
    try:
        database["complaint"].create_index("id", unique=True)
        database["user"].create_index("email", unique=True)
    except PyMongoError as e:
        raise StorageError(str(e)) from e


def record_key_filter(key: str) -> dict:
    """Match a complaint by its public id, or by its Mongo _id when the key is one."""
    if ObjectId.is_valid(key):
        return {"$or": [{"id": key}, {"_id": ObjectId(key)}]}
    return {"id": key}


def serialize_document(doc: dict) -> dict:
    out = {}
    for key, value in doc.items():
        if isinstance(value, ObjectId):
            out[key] = str(value)
        elif isinstance(value, datetime):
            out[key] = value.isoformat()
        else:
            out[key] = value
    return out
