from fastapi import APIRouter, Depends

from app.api.v1.schemas import BookingCreateSchema, BookingListSchema, BookingSchema
from app.application.use_cases.gateway import GatewayService
from app.wiring.dependencies import get_gateway

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("", response_model=BookingSchema, status_code=201)
def create_booking(
    req: BookingCreateSchema,
    gateway: GatewayService = Depends(get_gateway),
):
    booking = gateway.create_booking(req.to_fields())
    return BookingSchema.from_entity(booking)


@router.get("", response_model=BookingListSchema)
def list_bookings(gateway: GatewayService = Depends(get_gateway)):
    return BookingListSchema(bookings=[BookingSchema.from_entity(b) for b in gateway.list_bookings()])


@router.get("/{booking_id}", response_model=BookingSchema)
def get_booking(booking_id: int, gateway: GatewayService = Depends(get_gateway)):
    return BookingSchema.from_entity(gateway.get_booking(booking_id))


@router.post("/{booking_id}/cancel", response_model=BookingSchema)
def cancel_booking(booking_id: int, gateway: GatewayService = Depends(get_gateway)):
    return BookingSchema.from_entity(gateway.cancel_booking(booking_id))
