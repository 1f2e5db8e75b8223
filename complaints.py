import json
import time
import logging
import secrets
from datetime import datetime
from typing import Optional, Tuple

import pytz
from bson import ObjectId
from pydantic import ValidationError as PydanticValidationError

import storage
from database import (
    create_document,
    get_documents,
    update_document,
    delete_document,
    find_document,
    record_key_filter,
    serialize_document,
)
from errors import AuthError, NotFoundError, ValidationError
from schemas import Complaint, MapCoordinates, COMPLAINT_STATUSES

logger = logging.getLogger(__name__)

IST = pytz.timezone('Asia/Kolkata')

COLLECTION = "complaint"

FORM_FIELDS = (
    "fullName", "contactNumber", "email", "routeNumber",
    "location", "complaintType", "description", "priority",
)

NEWEST_FIRST = [("createdAt", -1), ("_id", -1)]


def new_complaint_id() -> str:
    return f"CMP{int(time.time() * 1000)}{secrets.token_hex(2).upper()}"


def default_timestamp() -> str:
    return datetime.now(IST).strftime("%d/%m/%Y, %I:%M:%S %p").lower()


def parse_map_pin(value) -> bool:
    return value is True or value == "true"


def parse_coordinates(raw) -> Optional[MapCoordinates]:
    if raw is None or raw == "":
        return None
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError(f"mapCoordinates is not valid JSON: {e.msg}")
    if raw is None:
        return None
    try:
        return MapCoordinates.model_validate(raw)
    except PydanticValidationError:
        raise ValidationError("mapCoordinates must be an object with numeric lat and lng")


def _require_identity(identity: Optional[dict]) -> None:
    if not identity:
        raise AuthError("Authentication required")


def _redacted(fields: dict) -> dict:
    return {k: ("<redacted>" if k in ("fullName", "contactNumber", "email") else v)
            for k, v in fields.items() if k in FORM_FIELDS}


def submit(fields: dict, image: Optional[Tuple[str, bytes]] = None, base_url: str = "") -> dict:
    """Create a complaint from submitted form fields.

    ``image`` is an optional ``(original_filename, data)`` pair. Required fields
    are not enforced here; only the submission form enforces them. The image
    write and the record insert are not atomic: a failed insert leaves the
    stored file behind.
    """
    map_pin = parse_map_pin(fields.get("mapPin"))
    coordinates = parse_coordinates(fields.get("mapCoordinates"))
    if not map_pin:
        coordinates = None

    image_name = image_url = None
    if image is not None:
        original_name, data = image
        image_name = storage.save_image(original_name, data)
        image_url = storage.public_url(base_url, image_name)

    complaint = Complaint(
        id=new_complaint_id(),
        **{name: fields.get(name) for name in FORM_FIELDS},
        image_name=image_name,
        image_url=image_url,
        map_pin=map_pin,
        map_coordinates=coordinates,
        timestamp=fields.get("timestamp") or default_timestamp(),
        status='Pending',
    )
    logger.info(f"New complaint {complaint.id}: {_redacted(fields)}")
    inserted_id = create_document(
        COLLECTION,
        complaint.model_dump(by_alias=True, exclude={"created_at", "updated_at"}),
    )
    stored = find_document(COLLECTION, {"_id": ObjectId(inserted_id)})
    return serialize_document(stored)


def list_complaints() -> list:
    return [serialize_document(c) for c in get_documents(COLLECTION, sort=NEWEST_FIRST)]


def update_status(key: str, new_status: str, identity: Optional[dict]) -> dict:
    _require_identity(identity)
    if find_document(COLLECTION, record_key_filter(key)) is None:
        raise NotFoundError("Complaint not found")
    if new_status not in COMPLAINT_STATUSES:
        raise ValidationError(f"Invalid status '{new_status}'. Allowed: {', '.join(COMPLAINT_STATUSES)}")
    updated = update_document(COLLECTION, record_key_filter(key), {"status": new_status})
    if updated is None:
        # deleted between lookup and update
        raise NotFoundError("Complaint not found")
    logger.info(f"Complaint {updated.get('id')} set to {new_status} by {identity.get('email')}")
    return serialize_document(updated)


def delete(key: str, identity: Optional[dict]) -> None:
    _require_identity(identity)
    if not delete_document(COLLECTION, record_key_filter(key)):
        raise NotFoundError("Complaint not found")
    logger.info(f"Complaint {key} deleted by {identity.get('email')}")
