# Persistence operations for the Wills collection
import asyncio
import logging
import math
import datetime
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, ValidationError
from pymongo import ReturnDocument
from pymongo.errors import AutoReconnect, ConnectionFailure

from will_service.app.config import settings
from will_service.app.models import (
    WillDB, WillStatus, WillDocuments, Person, RealProperty, PersonalAsset,
    ChatMessage, Photo, WitnessInfo, WillSearchResult, WillStatistics,
)
from will_service.app.models.base import new_id, utc_now
from will_service.app.observability import (
    tracer, wills_created_counter, will_sections_updated_counter,
    wills_executed_counter, db_retry_counter,
)
from will_service.app.service.exceptions import (
    WillNotFoundError, PersonNotFoundError, WillValidationError,
    ExecutionPreconditionError, ConcurrencyConflictError, PersistenceUnavailableError,
)
from will_service.app.service.validation import validate_section_update

logger = logging.getLogger(__name__)

TRANSIENT_DB_ERRORS = (AutoReconnect, ConnectionFailure)

PERSON_TYPES = {"executors": "executors", "guardians": "guardians"}
ASSET_TYPES = {
    "real_property": ("real_property", RealProperty),
    "realProperty": ("real_property", RealProperty),
    "personal_property": ("personal_property", PersonalAsset),
    "personalProperty": ("personal_property", PersonalAsset),
}
DOCUMENT_TYPES = {
    (field_info.alias or name): name for name, field_info in WillDocuments.model_fields.items()
}
DOCUMENT_TYPES.update({name: name for name in WillDocuments.model_fields})

# Fields fixed at creation; never rewritten by a mutation.
IMMUTABLE_FIELDS = ("id", "user_id", "created_at")

# Stamped on every versioned write so a retried write can recognise its own commit.
WRITE_TOKEN_FIELD = "last_write_id"


def _collection(db: AsyncIOMotorDatabase):
    return db[settings.WILLS_COLLECTION]


def _owner_filter(will_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    query: Dict[str, Any] = {"id": will_id}
    if user_id is not None:
        query["user_id"] = user_id
    return query


async def _with_retry(operation: str, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
    """Runs a driver call, retrying transient connection errors with exponential backoff."""
    attempts = max(1, settings.DB_RETRY_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        try:
            return await func(*args, **kwargs)
        except TRANSIENT_DB_ERRORS as e:
            if attempt == attempts:
                logger.error(f"{operation} failed after {attempts} attempt(s): {e}", exc_info=True)
                raise PersistenceUnavailableError(f"Document store unavailable during {operation}.") from e
            delay = settings.DB_RETRY_BACKOFF_SECONDS * (2 ** (attempt - 1))
            logger.warning(f"Transient error during {operation} (attempt {attempt}/{attempts}): {e}. Retrying in {delay}s.")
            db_retry_counter.add(1, {"operation": operation})
            await asyncio.sleep(delay)


def _parse(model_cls: Type[BaseModel], data: Any, label: str) -> BaseModel:
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except ValidationError as e:
        errors: Dict[str, List[str]] = {}
        for error in e.errors():
            errors.setdefault(".".join(str(p) for p in error["loc"]) or label, []).append(error["msg"])
        raise WillValidationError(f"Invalid {label} payload.", errors)


def _normalize_keys(model_cls: Type[BaseModel], data: Mapping) -> Dict[str, Any]:
    aliases = {(info.alias or name): name for name, info in model_cls.model_fields.items()}
    return {aliases.get(key, key): value for key, value in data.items()}


def _without_client_id(data: Any) -> Any:
    if isinstance(data, BaseModel):
        data = data.model_dump()
    if isinstance(data, Mapping):
        return {k: v for k, v in data.items() if k != "id"}
    return data


async def _apply_mutation(
    db: AsyncIOMotorDatabase,
    will_id: str,
    user_id: Optional[str],
    mutate: Callable[[WillDB], None],
    operation: str,
    expected_version: Optional[int] = None,
) -> WillDB:
    """
    Read-modify-write of one will, committed with a compare-and-set on `version`.

    `mutate` edits the loaded aggregate in place and may raise to abort. Progress
    is recomputed before the write. If another writer got in first the mutation
    is replayed on the fresh document, unless the caller pinned `expected_version`.
    """
    collection = _collection(db)
    owner_filter = _owner_filter(will_id, user_id)
    doc = await _with_retry(operation, collection.find_one, owner_filter)

    for _ in range(1 + max(0, settings.VERSION_CONFLICT_RETRIES)):
        if doc is None:
            raise WillNotFoundError(will_id)
        will = WillDB(**doc)
        if expected_version is not None and will.version != expected_version:
            raise ConcurrencyConflictError(will_id, expected_version, will.version)

        loaded_version = will.version
        mutate(will)
        will.update_progress()
        will.version = loaded_version + 1
        will.updated_at = utc_now()

        changes = will.to_document()
        for field in IMMUTABLE_FIELDS:
            changes.pop(field, None)
        write_token = new_id()
        changes[WRITE_TOKEN_FIELD] = write_token

        updated = await _with_retry(
            operation,
            collection.find_one_and_update,
            {**owner_filter, "version": loaded_version},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
        if updated is not None:
            return WillDB(**updated)

        doc = await _with_retry(operation, collection.find_one, owner_filter)
        if doc is not None and doc.get(WRITE_TOKEN_FIELD) == write_token:
            # The write committed but its reply was lost; a retry then missed on version.
            logger.info(f"Write to will {will_id} during {operation} had already committed (version {loaded_version + 1}).")
            return WillDB(**doc)
        if doc is not None and expected_version is not None:
            raise ConcurrencyConflictError(will_id, expected_version, doc.get("version", 0))
        logger.info(f"Will {will_id} changed during {operation} (version {loaded_version}); replaying on fresh copy.")

    actual_version = doc.get("version", 0) if doc else 0
    raise ConcurrencyConflictError(will_id, loaded_version, actual_version)


async def create_will(
    db: AsyncIOMotorDatabase,
    user_id: str,
    state_compliance: Optional[str] = None,
) -> WillDB:
    """Creates an empty draft will owned by `user_id` (taken from the session, never the request body)."""
    with tracer.start_as_current_span("will_store.create_will") as span:
        will = _parse(WillDB, {
            "user_id": user_id,
            "state_compliance": state_compliance or settings.DEFAULT_STATE_COMPLIANCE,
        }, "will")
        will.update_progress()
        span.set_attribute("will.id", will.id)

        await _with_retry("create_will", _collection(db).insert_one, will.to_document())
        wills_created_counter.add(1, {"state_compliance": will.state_compliance})
        logger.info(f"Will created with ID: {will.id} for user {user_id}")
        return will


async def get_will_by_id(db: AsyncIOMotorDatabase, will_id: str, user_id: Optional[str] = None) -> Optional[WillDB]:
    doc = await _with_retry("get_will_by_id", _collection(db).find_one, _owner_filter(will_id, user_id))
    return WillDB(**doc) if doc else None


async def get_wills_by_user_id(db: AsyncIOMotorDatabase, user_id: str) -> List[WillDB]:
    async def _fetch():
        cursor = _collection(db).find({"user_id": user_id}).sort("updated_at", -1)
        return await cursor.to_list(length=None)

    docs = await _with_retry("get_wills_by_user_id", _fetch)
    return [WillDB(**doc) for doc in docs]


async def update_will_section(
    db: AsyncIOMotorDatabase,
    will_id: str,
    section: str,
    section_data: Any,
    user_id: Optional[str] = None,
    expected_version: Optional[int] = None,
) -> WillDB:
    """Replaces one section wholesale and returns the will with recomputed progress."""
    with tracer.start_as_current_span("will_store.update_will_section") as span:
        span.set_attribute("will.id", will_id)
        span.set_attribute("will.section", section)

        # Validation happens before any I/O and is never retried.
        section_key, values = validate_section_update(section, section_data)

        def mutate(will: WillDB) -> None:
            for name, value in values.items():
                setattr(will.sections, name, value)
            will.progress.current_section = section_key

        will = await _apply_mutation(db, will_id, user_id, mutate, "update_will_section", expected_version)
        will_sections_updated_counter.add(1, {"section": section_key})
        logger.info(
            f"Section '{section_key}' updated for will {will_id}; "
            f"progress {will.progress.percent_complete}%, status {will.status}."
        )
        return will


def _person_field(person_type: str) -> str:
    if person_type not in PERSON_TYPES:
        raise WillValidationError(
            f"Unknown person type '{person_type}'.",
            {"person_type": [f"Must be one of {sorted(PERSON_TYPES)}"]},
        )
    return PERSON_TYPES[person_type]


def _person_list(will: WillDB, person_type: str) -> List[Person]:
    return getattr(will.sections, _person_field(person_type))


async def add_person(
    db: AsyncIOMotorDatabase,
    will_id: str,
    person_type: str,
    person_data: Any,
    user_id: Optional[str] = None,
) -> WillDB:
    field_name = _person_field(person_type)
    person = _parse(Person, _without_client_id(person_data), "person")

    def mutate(will: WillDB) -> None:
        getattr(will.sections, field_name).append(person)

    will = await _apply_mutation(db, will_id, user_id, mutate, "add_person")
    logger.info(f"Added person {person.id} to {person_type} of will {will_id}")
    return will


async def update_person(
    db: AsyncIOMotorDatabase,
    will_id: str,
    person_type: str,
    person_id: str,
    person_data: Mapping,
    user_id: Optional[str] = None,
) -> WillDB:
    """Merges the given fields into one person. Unknown person ids raise PersonNotFoundError."""
    changes = _normalize_keys(Person, person_data)
    changes.pop("id", None)

    def mutate(will: WillDB) -> None:
        people = _person_list(will, person_type)
        for index, existing in enumerate(people):
            if existing.id == person_id:
                people[index] = _parse(Person, {**existing.model_dump(), **changes, "id": person_id}, "person")
                return
        raise PersonNotFoundError(will_id, person_type, person_id)

    will = await _apply_mutation(db, will_id, user_id, mutate, "update_person")
    logger.info(f"Updated person {person_id} in {person_type} of will {will_id}")
    return will


async def remove_person(
    db: AsyncIOMotorDatabase,
    will_id: str,
    person_type: str,
    person_id: str,
    user_id: Optional[str] = None,
) -> WillDB:
    def mutate(will: WillDB) -> None:
        people = _person_list(will, person_type)
        remaining = [p for p in people if p.id != person_id]
        if len(remaining) == len(people):
            raise PersonNotFoundError(will_id, person_type, person_id)
        people[:] = remaining

    will = await _apply_mutation(db, will_id, user_id, mutate, "remove_person")
    logger.info(f"Removed person {person_id} from {person_type} of will {will_id}")
    return will


async def add_asset(
    db: AsyncIOMotorDatabase,
    will_id: str,
    asset_type: str,
    asset_data: Any,
    user_id: Optional[str] = None,
) -> WillDB:
    if asset_type not in ASSET_TYPES:
        raise WillValidationError(
            f"Unknown asset type '{asset_type}'.",
            {"asset_type": ["Must be one of ['personal_property', 'real_property']"]},
        )
    field_name, model_cls = ASSET_TYPES[asset_type]
    asset = _parse(model_cls, _without_client_id(asset_data), "asset")

    def mutate(will: WillDB) -> None:
        getattr(will.sections, field_name).append(asset)

    will = await _apply_mutation(db, will_id, user_id, mutate, "add_asset")
    logger.info(f"Added asset {asset.id} to {field_name} of will {will_id}")
    return will


async def add_chat_message(
    db: AsyncIOMotorDatabase,
    will_id: str,
    message: Mapping,
    user_id: Optional[str] = None,
) -> WillDB:
    # Only role and content come from the caller; id and timestamp are assigned here.
    normalized = _normalize_keys(ChatMessage, message)
    chat_message = _parse(ChatMessage, {
        "role": normalized.get("role"),
        "content": normalized.get("content"),
    }, "chat message")

    def mutate(will: WillDB) -> None:
        will.chat_history.append(chat_message)

    return await _apply_mutation(db, will_id, user_id, mutate, "add_chat_message")


async def add_photo(
    db: AsyncIOMotorDatabase,
    will_id: str,
    photo_data: Mapping,
    user_id: Optional[str] = None,
) -> WillDB:
    normalized = _normalize_keys(Photo, photo_data)
    photo = _parse(Photo, {
        key: normalized[key]
        for key in ("url", "caption", "associated_items", "size", "name")
        if key in normalized
    }, "photo")

    def mutate(will: WillDB) -> None:
        will.photos.append(photo)

    will = await _apply_mutation(db, will_id, user_id, mutate, "add_photo")
    logger.info(f"Added photo {photo.id} to will {will_id}")
    return will


async def set_document_reference(
    db: AsyncIOMotorDatabase,
    will_id: str,
    document_type: str,
    url: str,
    user_id: Optional[str] = None,
) -> WillDB:
    """Records a generated artifact (will PDF, wishes PDF, execution certificate)."""
    if document_type not in DOCUMENT_TYPES:
        raise WillValidationError(
            f"Unknown document type '{document_type}'.",
            {"document_type": [f"Must be one of {sorted(WillDocuments.model_fields)}"]},
        )
    if not url:
        raise WillValidationError("Document URL is required.", {"url": ["Field required"]})
    field_name = DOCUMENT_TYPES[document_type]

    def mutate(will: WillDB) -> None:
        setattr(will.documents, field_name, url)

    return await _apply_mutation(db, will_id, user_id, mutate, "set_document_reference")


async def execute_will(
    db: AsyncIOMotorDatabase,
    will_id: str,
    witness_info: Any,
    user_id: Optional[str] = None,
) -> WillDB:
    """
    Moves a completed will to executed. The eligibility check and the status
    change commit in the same versioned write, so of two concurrent calls only
    one can succeed; the other sees the executed will and is rejected.
    """
    with tracer.start_as_current_span("will_store.execute_will") as span:
        span.set_attribute("will.id", will_id)
        witnesses = _parse(WitnessInfo, witness_info, "witness info")

        def mutate(will: WillDB) -> None:
            blockers = will.execution_blockers()
            if blockers:
                raise ExecutionPreconditionError(will_id, blockers)
            will.status = WillStatus.EXECUTED.value
            will.executed_at = utc_now()
            will.witness_info = witnesses

        will = await _apply_mutation(db, will_id, user_id, mutate, "execute_will")
        wills_executed_counter.add(1, {"state_compliance": will.state_compliance})
        logger.info(f"Will {will_id} executed at {witnesses.execution_location}.")
        return will


async def delete_will(db: AsyncIOMotorDatabase, will_id: str, user_id: Optional[str] = None) -> bool:
    result = await _with_retry("delete_will", _collection(db).delete_one, _owner_filter(will_id, user_id))
    deleted = result.deleted_count > 0
    if deleted:
        logger.info(f"Will {will_id} deleted.")
    else:
        logger.info(f"Will {will_id} not found for deletion.")
    return deleted


async def search_wills(
    db: AsyncIOMotorDatabase,
    user_id: Optional[str] = None,
    status: Optional[str] = None,
    state_compliance: Optional[str] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> WillSearchResult:
    query_filter: Dict[str, Any] = {}
    if user_id:
        query_filter["user_id"] = user_id
    if status:
        query_filter["status"] = status
    if state_compliance:
        query_filter["state_compliance"] = state_compliance.upper()

    page = max(1, page)
    limit = min(max(1, limit or settings.SEARCH_DEFAULT_LIMIT), settings.SEARCH_MAX_LIMIT)
    skip = (page - 1) * limit

    async def _fetch():
        cursor = _collection(db).find(query_filter).sort("updated_at", -1).skip(skip).limit(limit)
        return await cursor.to_list(length=limit)

    total = await _with_retry("search_wills", _collection(db).count_documents, query_filter)
    docs = await _with_retry("search_wills", _fetch)
    return WillSearchResult(
        wills=[WillDB(**doc) for doc in docs],
        total=total,
        page=page,
        pages=math.ceil(total / limit),
    )


async def get_will_statistics(db: AsyncIOMotorDatabase) -> WillStatistics:
    collection = _collection(db)
    counts = {}
    for status in WillStatus:
        counts[status.value] = await _with_retry("get_will_statistics", collection.count_documents, {"status": status.value})

    async def _fetch_finished():
        cursor = collection.find(
            {"status": {"$in": [WillStatus.COMPLETED.value, WillStatus.EXECUTED.value]}},
            {"created_at": 1, "updated_at": 1},
        )
        return await cursor.to_list(length=None)

    finished = await _with_retry("get_will_statistics", _fetch_finished)
    durations: List[datetime.timedelta] = [
        doc["updated_at"] - doc["created_at"]
        for doc in finished
        if doc.get("created_at") and doc.get("updated_at")
    ]
    average_days = 0
    if durations:
        average_seconds = sum(d.total_seconds() for d in durations) / len(durations)
        average_days = round(average_seconds / 86400)

    return WillStatistics(
        total_wills=sum(counts.values()),
        draft_wills=counts[WillStatus.DRAFT.value],
        completed_wills=counts[WillStatus.COMPLETED.value],
        executed_wills=counts[WillStatus.EXECUTED.value],
        average_completion_days=average_days,
    )
