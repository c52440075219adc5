"""Properties and Rooms router."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from staydesk.core.database import get_db
from staydesk.core.security import require_staff, require_manager, AuthenticatedUser
from staydesk.models.property import Property, Room
from staydesk.schemas.property import (
    PropertyCreate,
    PropertyUpdate,
    PropertyResponse,
    RoomCreate,
    RoomResponse,
)

router = APIRouter(prefix="/properties", tags=["properties"])


@router.post("", response_model=PropertyResponse, status_code=status.HTTP_201_CREATED)
async def create_property(
    data: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_manager),
):
    """Create a new property."""
    prop = Property(
        name=data.name,
        address=data.address,
        city=data.city,
        postal_code=data.postal_code,
        country=data.country,
        description=data.description,
    )
    db.add(prop)
    await db.commit()
    await db.refresh(prop)

    return PropertyResponse(
        **prop.__dict__,
        room_count=0,
    )


@router.get("", response_model=List[PropertyResponse])
async def list_properties(
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """List all properties with their room counts."""
    result = await db.execute(
        select(Property, func.count(Room.id).label("room_count"))
        .outerjoin(Room, Property.id == Room.property_id)
        .group_by(Property.id)
        .order_by(Property.name)
    )
    rows = result.all()

    return [
        PropertyResponse(
            **row[0].__dict__,
            room_count=row[1],
        )
        for row in rows
    ]


@router.get("/{property_id}", response_model=PropertyResponse)
async def get_property(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """Get a property by ID."""
    result = await db.execute(
        select(Property, func.count(Room.id).label("room_count"))
        .outerjoin(Room, Property.id == Room.property_id)
        .where(Property.id == property_id)
        .group_by(Property.id)
    )
    row = result.one_or_none()

    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    return PropertyResponse(
        **row[0].__dict__,
        room_count=row[1],
    )


@router.patch("/{property_id}", response_model=PropertyResponse)
async def update_property(
    property_id: UUID,
    data: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_manager),
):
    """Update a property."""
    result = await db.execute(select(Property).where(Property.id == property_id))
    prop = result.scalar_one_or_none()

    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(prop, field, value)

    await db.commit()
    await db.refresh(prop)

    count_result = await db.execute(
        select(func.count(Room.id)).where(Room.property_id == property_id)
    )
    room_count = count_result.scalar() or 0

    return PropertyResponse(
        **prop.__dict__,
        room_count=room_count,
    )


# --- Rooms ---

@router.post("/{property_id}/rooms", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    property_id: UUID,
    data: RoomCreate,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_manager),
):
    """Create a room within a property."""
    result = await db.execute(select(Property).where(Property.id == property_id))
    if not result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    room = Room(
        property_id=property_id,
        name=data.name,
        max_guests=data.max_guests,
        description=data.description,
    )
    db.add(room)
    await db.commit()
    await db.refresh(room)

    return RoomResponse.model_validate(room)


@router.get("/{property_id}/rooms", response_model=List[RoomResponse])
async def list_rooms(
    property_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: AuthenticatedUser = Depends(require_staff),
):
    """List all rooms of a property."""
    prop_result = await db.execute(select(Property).where(Property.id == property_id))
    if not prop_result.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

    result = await db.execute(
        select(Room)
        .where(Room.property_id == property_id)
        .order_by(Room.name)
    )
    rooms = result.scalars().all()

    return [RoomResponse.model_validate(r) for r in rooms]
