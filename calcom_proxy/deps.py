"""
Request helpers shared by the routers: app-scoped components, the mentorUid query parameter,
and the resolve-then-load step every Cal.com call starts with.
"""
from typing import Annotated, Optional

from fastapi import Query, Request
from starlette.concurrency import run_in_threadpool

from calcom_proxy.calcom_client import CalcomClient
from calcom_proxy.delegation import ProfileStore, resolve_target_uid
from calcom_proxy.identity import Identity
from calcom_proxy.schemas import MentorRequest
from calcom_proxy.token_store import StoredCredential, TokenStore

# mentorUid may also arrive in the query string; the body wins when both are present
MentorUidQuery = Annotated[Optional[str], Query(alias="mentorUid")]


def get_token_store(request: Request) -> TokenStore:
    return request.app.state.token_store


def get_profiles(request: Request) -> ProfileStore:
    return request.app.state.profiles


def get_calcom(request: Request) -> CalcomClient:
    return request.app.state.calcom


def requested_mentor_uid(body: MentorRequest | None, query_uid: str | None) -> str | None:
    if body is not None and body.mentorUid:
        return body.mentorUid
    return query_uid or None


async def resolve_mentor_uid(request: Request, caller: Identity, requested_uid: str | None) -> str:
    return await run_in_threadpool(resolve_target_uid, caller.uid, requested_uid, get_profiles(request))


async def resolve_credential(
    request: Request, caller: Identity, requested_uid: str | None
) -> tuple[str, StoredCredential]:
    """Effective mentor uid and their usable credential. NotAuthorized / CredentialNotConfigured otherwise."""
    uid = await resolve_mentor_uid(request, caller, requested_uid)
    credential = await run_in_threadpool(get_token_store(request).require, uid)
    return uid, credential
