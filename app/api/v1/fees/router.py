"""Fees router: class / bus / hostel fee structures, summaries, fee calculation preview."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db
from app.fees.aggregator import FeeCalculationResult

from .schemas import (
    ActiveStatusUpdate,
    BusFeeSearchResult,
    BusFeeStructureCreate,
    BusFeeStructureList,
    BusFeeStructureResponse,
    BusFeeStructureUpdate,
    BusFeeSummary,
    ClassFeeStructureCreate,
    ClassFeeStructureList,
    ClassFeeStructureResponse,
    ClassFeeStructureUpdate,
    ClassFeeSummary,
    FeeCalculationRequest,
    HostelFeeStructureCreate,
    HostelFeeStructureList,
    HostelFeeStructureResponse,
    HostelFeeStructureUpdate,
    HostelFeeSummary,
)
from . import service

router = APIRouter(prefix="/api/v1/fees", tags=["fees"])


# --- Class Fee Structure ---
@router.post(
    "/class",
    response_model=ClassFeeStructureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_or_update_class_fee_structure(
    payload: ClassFeeStructureCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> ClassFeeStructureResponse:
    try:
        cfs, created = await service.upsert_class_fee_structure(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not created:
        response.status_code = status.HTTP_200_OK
    return cfs


@router.get("/class", response_model=ClassFeeStructureList)
async def list_class_fee_structures(
    academic_year: Optional[str] = Query(None),
    class_name: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> ClassFeeStructureList:
    try:
        return await service.list_class_fee_structures(
            db, academic_year=academic_year, class_name=class_name, is_active=is_active, page=page, limit=limit
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/class/summary", response_model=ClassFeeSummary)
async def class_fee_summary(
    academic_year: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> ClassFeeSummary:
    return await service.class_fee_summary(db, academic_year)


@router.get("/class/{class_name}/{academic_year}", response_model=ClassFeeStructureResponse)
async def get_class_fee_structure(
    class_name: str,
    academic_year: str,
    db: AsyncSession = Depends(get_db),
) -> ClassFeeStructureResponse:
    try:
        return await service.get_class_fee_structure(db, class_name, academic_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/class/{structure_id}", response_model=ClassFeeStructureResponse)
async def update_class_fee_structure(
    structure_id: UUID,
    payload: ClassFeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
) -> ClassFeeStructureResponse:
    try:
        return await service.update_class_fee_structure(db, structure_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/class/{structure_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_class_fee_structure(
    structure_id: UUID,
    deleted_by: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_class_fee_structure(db, structure_id, deleted_by)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/class/{structure_id}/active", response_model=ClassFeeStructureResponse)
async def toggle_class_fee_structure(
    structure_id: UUID,
    payload: ActiveStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> ClassFeeStructureResponse:
    try:
        return await service.set_class_fee_structure_active(db, structure_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Bus Fee Structure ---
@router.post(
    "/bus",
    response_model=BusFeeStructureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_or_update_bus_fee_structure(
    payload: BusFeeStructureCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> BusFeeStructureResponse:
    try:
        bfs, created = await service.upsert_bus_fee_structure(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not created:
        response.status_code = status.HTTP_200_OK
    return bfs


@router.get("/bus", response_model=BusFeeStructureList)
async def list_bus_fee_structures(
    academic_year: Optional[str] = Query(None),
    village_name: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    vehicle_type: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> BusFeeStructureList:
    return await service.list_bus_fee_structures(
        db,
        academic_year=academic_year,
        village_name=village_name,
        is_active=is_active,
        vehicle_type=vehicle_type,
        page=page,
        limit=limit,
    )


@router.get("/bus/search", response_model=BusFeeSearchResult)
async def search_bus_fee_structures(
    village_name: str = Query(""),
    academic_year: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> BusFeeSearchResult:
    try:
        return await service.search_bus_fee_structures(db, village_name, academic_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/bus/summary", response_model=BusFeeSummary)
async def bus_fee_summary(
    academic_year: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> BusFeeSummary:
    return await service.bus_fee_summary(db, academic_year)


@router.get("/bus/{village_name}/{academic_year}", response_model=BusFeeStructureResponse)
async def get_bus_fee_structure(
    village_name: str,
    academic_year: str,
    db: AsyncSession = Depends(get_db),
) -> BusFeeStructureResponse:
    try:
        return await service.get_bus_fee_structure(db, village_name, academic_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/bus/{structure_id}", response_model=BusFeeStructureResponse)
async def update_bus_fee_structure(
    structure_id: UUID,
    payload: BusFeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
) -> BusFeeStructureResponse:
    try:
        return await service.update_bus_fee_structure(db, structure_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/bus/{structure_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bus_fee_structure(
    structure_id: UUID,
    deleted_by: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_bus_fee_structure(db, structure_id, deleted_by)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/bus/{structure_id}/active", response_model=BusFeeStructureResponse)
async def toggle_bus_fee_structure(
    structure_id: UUID,
    payload: ActiveStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> BusFeeStructureResponse:
    try:
        return await service.set_bus_fee_structure_active(db, structure_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Hostel Fee Structure ---
@router.post(
    "/hostel",
    response_model=HostelFeeStructureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_or_update_hostel_fee_structure(
    payload: HostelFeeStructureCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> HostelFeeStructureResponse:
    try:
        hfs, created = await service.upsert_hostel_fee_structure(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not created:
        response.status_code = status.HTTP_200_OK
    return hfs


@router.get("/hostel", response_model=HostelFeeStructureList)
async def list_hostel_fee_structures(
    academic_year: Optional[str] = Query(None),
    class_name: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
) -> HostelFeeStructureList:
    try:
        return await service.list_hostel_fee_structures(
            db, academic_year=academic_year, class_name=class_name, is_active=is_active, page=page, limit=limit
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/hostel/summary", response_model=HostelFeeSummary)
async def hostel_fee_summary(
    academic_year: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> HostelFeeSummary:
    return await service.hostel_fee_summary(db, academic_year)


@router.get("/hostel/{class_name}/{academic_year}", response_model=HostelFeeStructureResponse)
async def get_hostel_fee_structure(
    class_name: str,
    academic_year: str,
    db: AsyncSession = Depends(get_db),
) -> HostelFeeStructureResponse:
    try:
        return await service.get_hostel_fee_structure(db, class_name, academic_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.put("/hostel/{structure_id}", response_model=HostelFeeStructureResponse)
async def update_hostel_fee_structure(
    structure_id: UUID,
    payload: HostelFeeStructureUpdate,
    db: AsyncSession = Depends(get_db),
) -> HostelFeeStructureResponse:
    try:
        return await service.update_hostel_fee_structure(db, structure_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete("/hostel/{structure_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_hostel_fee_structure(
    structure_id: UUID,
    deleted_by: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        await service.delete_hostel_fee_structure(db, structure_id, deleted_by)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch("/hostel/{structure_id}/active", response_model=HostelFeeStructureResponse)
async def toggle_hostel_fee_structure(
    structure_id: UUID,
    payload: ActiveStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> HostelFeeStructureResponse:
    try:
        return await service.set_hostel_fee_structure_active(db, structure_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Fee calculation preview ---
@router.post("/calculate", response_model=FeeCalculationResult)
async def calculate_fees(
    payload: FeeCalculationRequest,
    db: AsyncSession = Depends(get_db),
) -> FeeCalculationResult:
    try:
        return await service.preview_student_fees(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
