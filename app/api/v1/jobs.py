from fastapi import APIRouter, Depends, Query

from app.api.v1.schemas import (
    AvailableJobSchema, AvailableJobsSchema,
    ClaimRequestSchema, JobListSchema, JobRecordSchema,
)
from app.application.use_cases.gateway import GatewayService
from app.wiring.dependencies import get_gateway

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/available", response_model=AvailableJobsSchema)
def available_jobs(
    contractor_id: int | None = Query(None, alias="contractorId"),
    gateway: GatewayService = Depends(get_gateway),
):
    pending = gateway.list_pending_jobs(contractor_id=contractor_id)
    bids = gateway.bid_counts()
    return AvailableJobsSchema(
        jobs=[
            AvailableJobSchema.from_booking(b, bid_count=bids.get(b.id, 0))
            for b in pending
        ]
    )


@router.post("/accept", response_model=JobRecordSchema)
def accept_job(
    req: ClaimRequestSchema,
    gateway: GatewayService = Depends(get_gateway),
):
    record = gateway.claim_job(req.booking_id, req.contractor_id, req.price)
    return JobRecordSchema.from_entity(record)


@router.get("", response_model=JobListSchema)
def list_jobs(
    booking_id: int | None = Query(None, alias="bookingId"),
    gateway: GatewayService = Depends(get_gateway),
):
    return JobListSchema(jobs=[JobRecordSchema.from_entity(j) for j in gateway.list_jobs(booking_id)])
