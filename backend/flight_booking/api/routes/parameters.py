"""
Business parameter endpoints.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from flight_booking.db.session import get_db
from flight_booking.schemas.parameter import ParameterResponse, ParameterUpdate
from flight_booking.services.parameter_service import get_parameters, update_parameters

router = APIRouter(prefix="/parameters", tags=["Parameters"])


@router.get("/", response_model=ParameterResponse)
async def read_parameters(db: AsyncSession = Depends(get_db)):
    return ParameterResponse(**asdict(await get_parameters(db)))


@router.put("/", response_model=ParameterResponse)
async def write_parameters(changes: ParameterUpdate, db: AsyncSession = Depends(get_db)):
    """Only the fields present in the body change; the rest keep their value."""
    params = await update_parameters(db, **changes.model_dump(exclude_none=True))
    return ParameterResponse(**asdict(params))
