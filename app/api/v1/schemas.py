from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.domain.entities.api_key import ApiKey
from app.domain.entities.booking import Booking, BookingFields, BookingStatus, Customer
from app.domain.entities.job import JobRecord
from app.domain.entities.stats import StatsView


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookingCreateSchema(CamelModel):
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    service_name: str
    preferred_date: str
    preferred_time: str
    address: str
    notes: str | None = None

    def to_fields(self) -> BookingFields:
        return BookingFields(
            customer=Customer(
                first_name=self.first_name,
                last_name=self.last_name,
                email=self.email,
                phone=self.phone,
            ),
            service=self.service_name,
            preferred_date=self.preferred_date,
            preferred_time=self.preferred_time,
            address=self.address,
            notes=self.notes,
        )


class BookingSchema(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str | None = None
    service_name: str
    preferred_date: str
    preferred_time: str
    address: str
    notes: str | None = None
    status: BookingStatus
    contractor_id: int | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, booking: Booking) -> "BookingSchema":
        return cls(
            id=booking.id,
            first_name=booking.customer.first_name,
            last_name=booking.customer.last_name,
            email=booking.customer.email,
            phone=booking.customer.phone,
            service_name=booking.service,
            preferred_date=booking.preferred_date,
            preferred_time=booking.preferred_time,
            address=booking.address,
            notes=booking.notes,
            status=booking.status,
            contractor_id=booking.contractor_id,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


class BookingListSchema(CamelModel):
    bookings: list[BookingSchema]


class AvailableJobSchema(BookingSchema):
    bid_count: int = 0

    @classmethod
    def from_booking(cls, booking: Booking, bid_count: int) -> "AvailableJobSchema":
        job = cls.from_entity(booking)
        job.bid_count = bid_count
        return job


class AvailableJobsSchema(CamelModel):
    jobs: list[AvailableJobSchema]


class ClaimRequestSchema(CamelModel):
    booking_id: int
    contractor_id: int
    price: float = Field(ge=0)


class JobRecordSchema(CamelModel):
    id: int
    booking_id: int
    contractor_id: int
    price: float
    status: str
    created_at: datetime

    @classmethod
    def from_entity(cls, record: JobRecord) -> "JobRecordSchema":
        return cls(
            id=record.id,
            booking_id=record.booking_id,
            contractor_id=record.contractor_id,
            price=record.price,
            status=record.status,
            created_at=record.created_at,
        )


class JobListSchema(CamelModel):
    jobs: list[JobRecordSchema]


class EndpointStatsSchema(CamelModel):
    method: str
    path: str
    count: int
    error_count: int
    avg_latency_ms: float


class StatsSchema(CamelModel):
    total_requests: int
    total_errors: int
    error_rate: str
    uptime_seconds: float
    endpoints: list[EndpointStatsSchema] = Field(default_factory=list)
    keys: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_view(cls, view: StatsView) -> "StatsSchema":
        return cls(
            total_requests=view.total_requests,
            total_errors=view.total_errors,
            error_rate=view.error_rate,
            uptime_seconds=view.uptime_seconds,
            endpoints=[
                EndpointStatsSchema(
                    method=e.method,
                    path=e.path,
                    count=e.count,
                    error_count=e.error_count,
                    avg_latency_ms=e.avg_latency_ms,
                )
                for e in view.endpoints
            ],
            keys=dict(view.keys),
        )


class IssueKeyRequestSchema(CamelModel):
    name: str = Field(min_length=1)


class ApiKeySchema(CamelModel):
    id: str
    name: str
    key_prefix: str
    active: bool
    usage_count: int
    last_used_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_entity(cls, api_key: ApiKey) -> "ApiKeySchema":
        return cls(
            id=api_key.id,
            name=api_key.name,
            key_prefix=api_key.key_prefix,
            active=api_key.active,
            usage_count=api_key.usage_count,
            last_used_at=api_key.last_used_at,
            created_at=api_key.created_at,
        )


class IssuedKeySchema(ApiKeySchema):
    api_key: str  # shown once


class ApiKeyListSchema(CamelModel):
    keys: list[ApiKeySchema]
