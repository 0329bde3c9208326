# API Router for Wills
from fastapi import APIRouter, Depends, HTTPException, Body, Query, Response
import logging
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from will_service.infrastructure.database import will_store
from will_service.infrastructure.database.connection import get_db
from will_service.app.dependencies.auth import get_current_user_id
from will_service.app.models import WillDB, WillSearchResult, WillStatistics, WitnessInfo
from will_service.app.models.requests import (
    CreateWillRequest, SectionUpdateRequest, ChatMessageRequest, PhotoRequest, DocumentReferenceRequest,
)
from will_service.app.service.exceptions import (
    WillNotFoundError, PersonNotFoundError, WillValidationError,
    ExecutionPreconditionError, ConcurrencyConflictError, PersistenceUnavailableError,
)

logger = logging.getLogger(__name__)
router = APIRouter()


def _http_error(action: str, e: Exception) -> HTTPException:
    if isinstance(e, (WillNotFoundError, PersonNotFoundError)):
        logger.info(f"{action}: {e}")
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, WillValidationError):
        logger.warning(f"Validation error during {action}: {e} {e.errors}")
        return HTTPException(status_code=422, detail={"message": str(e), "errors": e.errors})
    if isinstance(e, ExecutionPreconditionError):
        logger.warning(f"Precondition failed during {action}: {e}")
        return HTTPException(status_code=409, detail={"message": str(e), "reasons": e.reasons})
    if isinstance(e, ConcurrencyConflictError):
        logger.warning(f"Concurrency conflict during {action}: {e}")
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, PersistenceUnavailableError):
        logger.error(f"Persistence unavailable during {action}: {e}")
        return HTTPException(status_code=503, detail="Will storage is temporarily unavailable. Please retry.")
    logger.error(f"Unexpected error during {action}: {e}", exc_info=True)
    return HTTPException(status_code=500, detail=f"An unexpected error occurred during {action}.")


@router.post("/wills", response_model=WillDB, status_code=201, tags=["Wills"])
async def create_will_api(
    request_data: Optional[CreateWillRequest] = None,
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        state_compliance = request_data.state_compliance if request_data else None
        return await will_store.create_will(db, user_id, state_compliance)
    except Exception as e:
        raise _http_error("will creation", e)


@router.get("/wills", response_model=List[WillDB], tags=["Wills"])
async def list_wills_api(user_id: str = Depends(get_current_user_id), db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        return await will_store.get_wills_by_user_id(db, user_id)
    except Exception as e:
        raise _http_error("listing wills", e)


@router.get("/wills/search", response_model=WillSearchResult, tags=["Wills"])
async def search_wills_api(
    status: Optional[str] = None,
    state_compliance: Optional[str] = Query(default=None, alias="stateCompliance"),
    page: int = Query(default=1, ge=1),
    limit: Optional[int] = Query(default=None, ge=1),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.search_wills(
            db, user_id=user_id, status=status, state_compliance=state_compliance, page=page, limit=limit
        )
    except Exception as e:
        raise _http_error("will search", e)


@router.get("/wills/statistics", response_model=WillStatistics, tags=["Wills"])
async def will_statistics_api(
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.get_will_statistics(db)
    except Exception as e:
        raise _http_error("will statistics", e)


@router.get("/wills/{will_id}", response_model=WillDB, tags=["Wills"])
async def get_will_api(will_id: str, user_id: str = Depends(get_current_user_id), db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        will = await will_store.get_will_by_id(db, will_id, user_id)
    except Exception as e:
        raise _http_error(f"retrieving will {will_id}", e)
    if will is None:
        raise HTTPException(status_code=404, detail=f"Will with ID '{will_id}' not found.")
    return will


@router.delete("/wills/{will_id}", status_code=204, tags=["Wills"])
async def delete_will_api(will_id: str, user_id: str = Depends(get_current_user_id), db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        deleted = await will_store.delete_will(db, will_id, user_id)
    except Exception as e:
        raise _http_error(f"deleting will {will_id}", e)
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Will with ID '{will_id}' not found.")
    return Response(status_code=204)


@router.put("/wills/{will_id}/section", response_model=WillDB, tags=["Wills"])
async def update_will_section_api(
    will_id: str,
    request_data: SectionUpdateRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """Replaces one section of the will and returns it with recomputed progress."""
    try:
        return await will_store.update_will_section(
            db, will_id, request_data.section, request_data.data,
            user_id=user_id, expected_version=request_data.expected_version,
        )
    except Exception as e:
        raise _http_error(f"updating section '{request_data.section}' of will {will_id}", e)


@router.post("/wills/{will_id}/persons/{person_type}", response_model=WillDB, status_code=201, tags=["Persons"])
async def add_person_api(
    will_id: str,
    person_type: str,
    person_data: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.add_person(db, will_id, person_type, person_data, user_id)
    except Exception as e:
        raise _http_error(f"adding {person_type} to will {will_id}", e)


@router.patch("/wills/{will_id}/persons/{person_type}/{person_id}", response_model=WillDB, tags=["Persons"])
async def update_person_api(
    will_id: str,
    person_type: str,
    person_id: str,
    person_data: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.update_person(db, will_id, person_type, person_id, person_data, user_id)
    except Exception as e:
        raise _http_error(f"updating person {person_id} of will {will_id}", e)


@router.delete("/wills/{will_id}/persons/{person_type}/{person_id}", response_model=WillDB, tags=["Persons"])
async def remove_person_api(
    will_id: str,
    person_type: str,
    person_id: str,
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.remove_person(db, will_id, person_type, person_id, user_id)
    except Exception as e:
        raise _http_error(f"removing person {person_id} from will {will_id}", e)


@router.post("/wills/{will_id}/assets/{asset_type}", response_model=WillDB, status_code=201, tags=["Assets"])
async def add_asset_api(
    will_id: str,
    asset_type: str,
    asset_data: Dict[str, Any] = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.add_asset(db, will_id, asset_type, asset_data, user_id)
    except Exception as e:
        raise _http_error(f"adding {asset_type} to will {will_id}", e)


@router.post("/wills/{will_id}/chat", response_model=WillDB, status_code=201, tags=["Wills"])
async def add_chat_message_api(
    will_id: str,
    message: ChatMessageRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.add_chat_message(db, will_id, message.model_dump(), user_id)
    except Exception as e:
        raise _http_error(f"adding chat message to will {will_id}", e)


@router.post("/wills/{will_id}/photos", response_model=WillDB, status_code=201, tags=["Wills"])
async def add_photo_api(
    will_id: str,
    photo: PhotoRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.add_photo(db, will_id, photo.model_dump(), user_id)
    except Exception as e:
        raise _http_error(f"adding photo to will {will_id}", e)


@router.put("/wills/{will_id}/documents/{document_type}", response_model=WillDB, tags=["Documents"])
async def set_document_reference_api(
    will_id: str,
    document_type: str,
    request_data: DocumentReferenceRequest = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.set_document_reference(db, will_id, document_type, request_data.url, user_id)
    except Exception as e:
        raise _http_error(f"recording {document_type} for will {will_id}", e)


@router.post("/wills/{will_id}/execute", response_model=WillDB, tags=["Wills"])
async def execute_will_api(
    will_id: str,
    witness_info: WitnessInfo = Body(...),
    user_id: str = Depends(get_current_user_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        return await will_store.execute_will(db, will_id, witness_info, user_id)
    except Exception as e:
        raise _http_error(f"executing will {will_id}", e)
