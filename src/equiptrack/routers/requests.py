"""
Request record API routers (rentals, calibrations, maintenance)

The three kinds share one set of endpoints; each router is built from the
kind's schemas and delegates to the status transition engine.
"""

from typing import Optional, Type

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.core import get_db
from ..dependencies import get_current_active_user, require_admin, get_status_engine
from ..schemas.auth import TokenPayload
from ..schemas.enums import RequestKind, RequestStatus
from ..schemas.requests import (
    RentalCreate,
    RentalUpdate,
    RentalRead,
    CalibrationCreate,
    CalibrationUpdate,
    CalibrationRead,
    CertificateData,
    MaintenanceCreate,
    MaintenanceUpdate,
    MaintenanceRead,
    StatusChangeRequest,
    CompletionDetails,
)
from ..services.certificate_service import get_certificate_data
from ..services.status_engine import StatusTransitionEngine


def build_request_router(
    kind: RequestKind,
    prefix: str,
    tag: str,
    create_schema: Type[BaseModel],
    update_schema: Type[BaseModel],
    read_schema: Type[BaseModel],
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.post("/", response_model=read_schema, status_code=201)
    async def create_request(
        data: create_schema,
        db: AsyncSession = Depends(get_db),
        current_user: TokenPayload = Depends(get_current_active_user),
        engine: StatusTransitionEngine = Depends(get_status_engine),
    ):
        """Create a request for an available item"""
        return await engine.create_request(db, kind, data.item_serial, current_user, data)

    @router.get("/")
    async def list_requests(
        status: Optional[RequestStatus] = Query(None, description="Filter by status"),
        page: int = Query(1, ge=1, description="Page number"),
        limit: int = Query(20, ge=1, le=100, description="Number of items per page"),
        db: AsyncSession = Depends(get_db),
        current_user: TokenPayload = Depends(get_current_active_user),
        engine: StatusTransitionEngine = Depends(get_status_engine),
    ):
        """List requests; users only see their own"""
        listing = await engine.list_requests(db, kind, current_user, status=status, page=page, limit=limit)
        listing["items"] = [read_schema.model_validate(record) for record in listing["items"]]
        return listing

    @router.get("/{record_id}", response_model=read_schema)
    async def get_request(
        record_id: str,
        db: AsyncSession = Depends(get_db),
        current_user: TokenPayload = Depends(get_current_active_user),
        engine: StatusTransitionEngine = Depends(get_status_engine),
    ):
        """Get one request with its status logs"""
        return await engine.get_request(db, kind, record_id, current_user)

    @router.patch("/{record_id}", response_model=read_schema)
    async def update_request(
        record_id: str,
        changes: update_schema,
        db: AsyncSession = Depends(get_db),
        current_user: TokenPayload = Depends(require_admin),
        engine: StatusTransitionEngine = Depends(get_status_engine),
    ):
        """Edit the details of an open request"""
        return await engine.update_request_details(db, kind, record_id, current_user, changes)

    @router.post("/{record_id}/status", response_model=read_schema)
    async def change_status(
        record_id: str,
        change: StatusChangeRequest,
        db: AsyncSession = Depends(get_db),
        current_user: TokenPayload = Depends(get_current_active_user),
        engine: StatusTransitionEngine = Depends(get_status_engine),
    ):
        """Apply a status transition"""
        completion = CompletionDetails.model_validate(
            change.model_dump(include=set(CompletionDetails.model_fields))
        )
        return await engine.transition_status(
            db, kind, record_id, change.status, current_user,
            notes=change.notes, completion=completion,
        )

    return router


rentals_router = build_request_router(
    RequestKind.RENTAL, "/v1/rentals", "rentals", RentalCreate, RentalUpdate, RentalRead
)
calibrations_router = build_request_router(
    RequestKind.CALIBRATION, "/v1/calibrations", "calibrations",
    CalibrationCreate, CalibrationUpdate, CalibrationRead,
)
maintenance_router = build_request_router(
    RequestKind.MAINTENANCE, "/v1/maintenance", "maintenance",
    MaintenanceCreate, MaintenanceUpdate, MaintenanceRead,
)


@rentals_router.delete("/{record_id}", response_model=RentalRead)
async def cancel_rental(
    record_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: TokenPayload = Depends(get_current_active_user),
    engine: StatusTransitionEngine = Depends(get_status_engine),
):
    """Cancel a rental"""
    return await engine.transition_status(
        db, RequestKind.RENTAL, record_id, RequestStatus.CANCELLED, current_user,
        notes="Rental cancelled",
    )


@calibrations_router.get("/{record_id}/certificate", response_model=CertificateData)
async def get_certificate(
    record_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: TokenPayload = Depends(get_current_active_user),
):
    """Certificate data of a completed calibration"""
    return await get_certificate_data(db, record_id, current_user)
