"""
Waitlist API routes
"""

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from app.core.errors import DomainError
from app.schemas.party import JoinRequest, PartyResponse, PartyStatusResponse
from app.services.waitlist_service import INVALID_JOIN_MESSAGE, WaitlistService
from app.utils.responses import json_response, error_response, domain_error_response

router = APIRouter()

def get_waitlist_service(request: Request) -> WaitlistService:
    return request.app.state.waitlist_service

@router.post("")
async def join_waitlist(
    request: Request,
    service: WaitlistService = Depends(get_waitlist_service)
):
    """Join the waitlist, or get back the party this client already has"""
    try:
        body = await request.json()
        join_data = JoinRequest.model_validate(body)
    except (ValueError, ValidationError):
        return error_response(message=INVALID_JOIN_MESSAGE, status_code=400)

    try:
        result = await service.join_party(
            name=join_data.name,
            party_size=join_data.party_size,
            client_id=join_data.client_id
        )
    except DomainError as e:
        return domain_error_response(e)

    return json_response(
        PartyStatusResponse(message=result.message, party_id=result.party_id, status=result.status),
        status_code=201
    )

@router.get("")
async def get_waitlist(service: WaitlistService = Depends(get_waitlist_service)):
    """Current queue and free seats"""
    return json_response(service.snapshot())

@router.get("/{party_id}")
async def get_party(
    party_id: str,
    service: WaitlistService = Depends(get_waitlist_service)
):
    """Look up a party's current status"""
    try:
        party = await service.get_party(party_id)
    except DomainError as e:
        return domain_error_response(e)

    return json_response(PartyResponse.model_validate(party))

@router.delete("/{party_id}")
async def leave_waitlist(
    party_id: str,
    service: WaitlistService = Depends(get_waitlist_service)
):
    """Leave the waitlist while still queued"""
    try:
        party = await service.cancel_party(party_id)
    except DomainError as e:
        return domain_error_response(e)

    return json_response(
        PartyStatusResponse(message="You have left the waitlist.", party_id=party.id, status=party.status)
    )
