from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from campus_exchange.api.dependencies import (
    Actor,
    get_actor,
    get_apply_request_event_use_case,
    get_create_request_use_case,
    get_entity_history_use_case,
    get_idempotency_boundary,
    get_idempotency_key,
    get_settings,
    get_uow_factory,
    page_limit,
    replayable_response,
)
from campus_exchange.api.schemas.audit_schemas import AuditEntryResponse, EntityHistoryResponse
from campus_exchange.api.schemas.request_schemas import (
    CreateRequestBody,
    ListingChangeResponse,
    PaginatedRequestsResponse,
    RequestEventBody,
    RequestResponse,
    RequestTransitionResponse,
)
from campus_exchange.application.errors import ForbiddenError, NotFoundError
from campus_exchange.application.idempotency import IdempotencyBoundary
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.application.use_cases.apply_request_event import (
    ApplyRequestEvent,
    ApplyRequestEventInput,
)
from campus_exchange.application.use_cases.create_request import (
    CreateRequest,
    CreateRequestInput,
)
from campus_exchange.application.use_cases.get_entity_history import (
    GetEntityHistory,
    GetEntityHistoryInput,
)
from campus_exchange.config import Settings
from campus_exchange.domain.entities.exchange_request import ExchangeRequest
from campus_exchange.domain.enums.request_status import RequestStatus

router = APIRouter(prefix="/requests", tags=["requests"])


def _request_to_response(request: ExchangeRequest) -> RequestResponse:
    return RequestResponse(
        id=request.id,
        listing_id=request.listing_id,
        buyer_id=request.buyer_id,
        seller_id=request.seller_id,
        status=request.status,
        version=request.version,
        message=request.message,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=RequestResponse)
async def create_request(
    body: CreateRequestBody,
    actor: Actor = Depends(get_actor),
    use_case: CreateRequest = Depends(get_create_request_use_case),
    boundary: IdempotencyBoundary = Depends(get_idempotency_boundary),
    idempotency_key: str | None = Depends(get_idempotency_key),
) -> JSONResponse:
    """Express interest in a listing. Replays the first response for a repeated key."""

    async def _create() -> dict:  # type: ignore[type-arg]
        output = await use_case.execute(
            CreateRequestInput(
                listing_id=body.listing_id,
                buyer_id=actor.id,
                message=body.message,
                idempotency_key=idempotency_key,
            )
        )
        return _request_to_response(output.request).model_dump(mode="json")

    result = await boundary.execute(
        user_id=actor.id, key=idempotency_key, scope="POST /requests", operation=_create
    )
    return replayable_response(result, status.HTTP_201_CREATED)


@router.get("", response_model=PaginatedRequestsResponse)
async def list_requests(
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(get_actor),
    settings: Settings = Depends(get_settings),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> PaginatedRequestsResponse:
    """List requests where the actor is buyer or seller. Admins see all."""
    limit = page_limit(limit, settings)
    async with uow_factory() as uow:
        requests, total = await uow.requests.list_for_actor(
            None if actor.is_admin else actor.id,
            status=status_filter,
            limit=limit,
            offset=offset,
        )
    return PaginatedRequestsResponse(
        requests=[_request_to_response(r) for r in requests],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{request_id}", response_model=RequestResponse)
async def get_request(
    request_id: UUID,
    actor: Actor = Depends(get_actor),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> RequestResponse:
    async with uow_factory() as uow:
        request = await uow.requests.get_by_id(request_id)
    if request is None:
        raise NotFoundError(f"Request {request_id} not found.")
    if not actor.is_admin and request.party_of(actor.id) is None:
        raise ForbiddenError("You are not a party to this request.")
    return _request_to_response(request)


@router.patch("/{request_id}/event", response_model=RequestTransitionResponse)
async def apply_request_event(
    request_id: UUID,
    body: RequestEventBody,
    actor: Actor = Depends(get_actor),
    use_case: ApplyRequestEvent = Depends(get_apply_request_event_use_case),
    boundary: IdempotencyBoundary = Depends(get_idempotency_boundary),
    idempotency_key: str | None = Depends(get_idempotency_key),
) -> JSONResponse:
    async def _apply() -> dict:  # type: ignore[type-arg]
        output = await use_case.execute(
            ApplyRequestEventInput(
                request_id=request_id,
                event=body.event,
                actor_id=actor.id,
                actor_role=actor.role,
                expected_version=body.version,
                idempotency_key=idempotency_key,
            )
        )
        response = RequestTransitionResponse(
            request=_request_to_response(output.request),
            from_status=output.from_status,
            to_status=output.to_status,
            listing_change=(
                ListingChangeResponse.model_validate(output.listing_change)
                if output.listing_change is not None
                else None
            ),
        )
        return response.model_dump(mode="json")

    result = await boundary.execute(
        user_id=actor.id,
        key=idempotency_key,
        scope=f"PATCH /requests/{request_id}/event",
        operation=_apply,
    )
    return replayable_response(result, status.HTTP_200_OK)


@router.get("/{request_id}/history", response_model=EntityHistoryResponse)
async def get_request_history(
    request_id: UUID,
    actor: Actor = Depends(get_actor),
    use_case: GetEntityHistory = Depends(get_entity_history_use_case),
) -> EntityHistoryResponse:
    output = await use_case.execute(
        GetEntityHistoryInput(
            entity_type="request",
            entity_id=request_id,
            actor_id=actor.id,
            actor_role=actor.role,
        )
    )
    return EntityHistoryResponse(
        entity_id=output.entity_id,
        history=[AuditEntryResponse.model_validate(entry) for entry in output.history],
    )
