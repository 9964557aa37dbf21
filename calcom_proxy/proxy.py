"""
Cal.com proxy routes. Each one: validate input, resolve the mentor, load their credential,
call Cal.com, relay status and body unchanged.
"""
import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from calcom_proxy.calcom_client import CalcomResponse
from calcom_proxy.deps import MentorUidQuery, get_calcom, requested_mentor_uid, resolve_credential
from calcom_proxy.errors import handler_errors
from calcom_proxy.identity import Caller, get_caller
from calcom_proxy.schemas import (
    AvailabilityRequest,
    CancelBookingRequest,
    CreateBookingRequest,
    ListBookingsRequest,
    MentorRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/calcom", dependencies=[Depends(get_caller)])

# Statuses that must not carry a body
_NO_BODY_STATUSES = {204, 304}


def relay(result: CalcomResponse) -> Response:
    if result.status_code in _NO_BODY_STATUSES:
        return Response(status_code=result.status_code)
    return JSONResponse(status_code=result.status_code, content=result.data)


@router.post("/event-types")
async def event_types(
    request: Request, caller: Caller, body: MentorRequest | None = None, mentor_uid: MentorUidQuery = None
):
    with handler_errors("Cal.com event types proxy error"):
        uid, credential = await resolve_credential(request, caller, requested_mentor_uid(body, mentor_uid))
        logger.debug("Fetching Cal.com event types for: %s", uid)
        result = await get_calcom(request).call(
            "/event-types",
            credential.api_key,
            query={"username": credential.cal_com_username},
        )
    return relay(result)


@router.post("/bookings/list")
async def list_bookings(request: Request, caller: Caller, body: ListBookingsRequest, mentor_uid: MentorUidQuery = None):
    with handler_errors("Cal.com bookings proxy error"):
        uid, credential = await resolve_credential(request, caller, requested_mentor_uid(body, mentor_uid))
        logger.debug("Fetching Cal.com bookings for: %s", uid)
        result = await get_calcom(request).call(
            "/bookings",
            credential.api_key,
            query={
                "username": credential.cal_com_username,
                "startTime": body.startTime,
                "endTime": body.endTime,
                "start": body.startTime,
                "end": body.endTime,
            },
        )
    return relay(result)


@router.post("/bookings")
async def create_booking(
    request: Request, caller: Caller, body: CreateBookingRequest, mentor_uid: MentorUidQuery = None
):
    with handler_errors("Cal.com booking proxy error"):
        uid, credential = await resolve_credential(request, caller, requested_mentor_uid(body, mentor_uid))
        logger.info("Creating Cal.com booking for: %s", uid)
        result = await get_calcom(request).call(
            "/bookings",
            credential.api_key,
            method="POST",
            body={**body.bookingRequest, "username": credential.cal_com_username},
        )
    return relay(result)


@router.post("/bookings/cancel")
async def cancel_booking(
    request: Request, caller: Caller, body: CancelBookingRequest, mentor_uid: MentorUidQuery = None
):
    booking_id = quote(str(body.bookingId), safe="")
    with handler_errors("Cal.com booking cancellation error"):
        uid, credential = await resolve_credential(request, caller, requested_mentor_uid(body, mentor_uid))
        logger.info("Canceling Cal.com booking %s for: %s", booking_id, uid)
        result = await get_calcom(request).call(
            f"/bookings/{booking_id}",
            credential.api_key,
            method="DELETE",
            body={"reason": body.reason} if body.reason else None,
        )
    return relay(result)


@router.post("/availability")
async def availability(
    request: Request, caller: Caller, body: AvailabilityRequest, mentor_uid: MentorUidQuery = None
):
    with handler_errors("Cal.com availability proxy error"):
        uid, credential = await resolve_credential(request, caller, requested_mentor_uid(body, mentor_uid))
        logger.debug("Fetching Cal.com availability for: %s", uid)
        result = await get_calcom(request).call(
            "/availability",
            credential.api_key,
            query={
                "username": credential.cal_com_username,
                "dateFrom": body.dateFrom,
                "dateTo": body.dateTo,
                "eventTypeId": body.eventTypeId,
            },
        )
    return relay(result)


@router.post("/schedules")
async def schedules(
    request: Request, caller: Caller, body: MentorRequest | None = None, mentor_uid: MentorUidQuery = None
):
    with handler_errors("Cal.com schedules proxy error"):
        uid, credential = await resolve_credential(request, caller, requested_mentor_uid(body, mentor_uid))
        logger.debug("Fetching Cal.com schedules for: %s", uid)
        result = await get_calcom(request).call(
            "/schedules",
            credential.api_key,
            query={"username": credential.cal_com_username},
        )
    return relay(result)
