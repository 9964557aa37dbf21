"""
Credential management routes: store, status, remove. Local reads/writes only, no Cal.com calls.
"""
import logging

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool

from calcom_proxy.deps import MentorUidQuery, get_token_store, requested_mentor_uid, resolve_mentor_uid
from calcom_proxy.errors import handler_errors
from calcom_proxy.identity import Caller, get_caller
from calcom_proxy.schemas import MentorRequest, StoreTokenRequest

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(get_caller)])


@router.post("/tokens")
async def store_token(request: Request, caller: Caller, body: StoreTokenRequest):
    """Store the caller's own API key and Cal.com username. Always the caller; mentorUid is ignored."""
    with handler_errors("Failed to store Cal.com API key"):
        await run_in_threadpool(get_token_store(request).store, caller.uid, body.apiKey, body.externalUsername)
    logger.info("Cal.com API key stored for mentor: %s", caller.uid)
    return {"success": True, "externalUsername": body.externalUsername}


@router.get("/tokens/status")
async def token_status(request: Request, caller: Caller, mentor_uid: MentorUidQuery = None):
    uid = await resolve_mentor_uid(request, caller, mentor_uid or None)
    with handler_errors("Failed to fetch Cal.com token status"):
        credential = await run_in_threadpool(get_token_store(request).load, uid)
    if credential is None:
        return {"connected": False}
    return {"connected": True, "externalUsername": credential.cal_com_username}


@router.delete("/tokens")
async def remove_token(
    request: Request, caller: Caller, body: MentorRequest | None = None, mentor_uid: MentorUidQuery = None
):
    """Idempotent: removing a credential that is not there still succeeds."""
    uid = await resolve_mentor_uid(request, caller, requested_mentor_uid(body, mentor_uid))
    with handler_errors("Failed to remove Cal.com API key"):
        await run_in_threadpool(get_token_store(request).remove, uid)
    logger.info("Cal.com API key removed for mentor: %s", uid)
    return {"success": True}
