from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    PaymentCreate,
    PaymentDetailsResponse,
    PaymentResponse,
    PaymentResult,
    PaymentSummaryResponse,
    PaymentValidationResponse,
    ReceiptResponse,
    StudentFeeDetailsResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.get("/students/{student_id}/fee-details", response_model=StudentFeeDetailsResponse)
async def get_student_fee_details(
    student_id: UUID,
    academic_year: Optional[str] = Query(None, description="Defaults to the student's current academic year"),
    db: AsyncSession = Depends(get_db),
) -> StudentFeeDetailsResponse:
    try:
        return await service.get_student_fee_details(db, student_id, academic_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/students/{student_id}/validate", response_model=PaymentValidationResponse)
async def validate_payment(
    student_id: UUID,
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
) -> PaymentValidationResponse:
    try:
        return await service.validate_payment(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/students/{student_id}", response_model=PaymentResult, status_code=status.HTTP_201_CREATED)
async def process_payment(
    student_id: UUID,
    payload: PaymentCreate,
    db: AsyncSession = Depends(get_db),
) -> PaymentResult:
    try:
        return await service.process_payment(db, student_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/history", response_model=List[PaymentResponse])
async def get_payment_history(
    student_id: UUID,
    academic_year: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> List[PaymentResponse]:
    try:
        return await service.get_payment_history(db, student_id, academic_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/summary", response_model=PaymentSummaryResponse)
async def get_payment_summary(
    student_id: UUID,
    academic_year: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
) -> PaymentSummaryResponse:
    try:
        return await service.get_payment_summary(db, student_id, academic_year)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/{payment_id}", response_model=PaymentDetailsResponse)
async def get_payment_details(
    student_id: UUID,
    payment_id: str,
    db: AsyncSession = Depends(get_db),
) -> PaymentDetailsResponse:
    try:
        return await service.get_payment_details(db, student_id, payment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/{payment_id}/receipt", response_model=ReceiptResponse)
async def get_receipt_data(
    student_id: UUID,
    payment_id: str,
    db: AsyncSession = Depends(get_db),
) -> ReceiptResponse:
    try:
        return await service.get_receipt_data(db, student_id, payment_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
