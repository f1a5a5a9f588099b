from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from campus_exchange.api.dependencies import (
    Actor,
    get_actor,
    get_create_listing_use_case,
    get_entity_history_use_case,
    get_idempotency_boundary,
    get_idempotency_key,
    get_settings,
    get_transition_listing_use_case,
    get_uow_factory,
    page_limit,
    replayable_response,
)
from campus_exchange.api.schemas.audit_schemas import AuditEntryResponse, EntityHistoryResponse
from campus_exchange.api.schemas.listing_schemas import (
    CreateListingBody,
    ListingResponse,
    ListingTransitionBody,
    PaginatedListingsResponse,
)
from campus_exchange.application.errors import NotFoundError
from campus_exchange.application.idempotency import IdempotencyBoundary
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.application.use_cases.create_listing import CreateListing, CreateListingInput
from campus_exchange.application.use_cases.get_entity_history import (
    GetEntityHistory,
    GetEntityHistoryInput,
)
from campus_exchange.application.use_cases.transition_listing_state import (
    TransitionListingState,
    TransitionListingStateInput,
)
from campus_exchange.config import Settings
from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.enums.listing_status import ListingStatus

router = APIRouter(prefix="/listings", tags=["listings"])


def _listing_to_response(listing: Listing) -> ListingResponse:
    return ListingResponse(
        id=listing.id,
        owner_id=listing.owner_id,
        title=listing.title,
        description=listing.description,
        category=listing.category,
        price=listing.price,
        status=listing.status,
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ListingResponse)
async def create_listing(
    body: CreateListingBody,
    actor: Actor = Depends(get_actor),
    use_case: CreateListing = Depends(get_create_listing_use_case),
    boundary: IdempotencyBoundary = Depends(get_idempotency_boundary),
    idempotency_key: str | None = Depends(get_idempotency_key),
) -> JSONResponse:
    async def _create() -> dict:  # type: ignore[type-arg]
        listing = await use_case.execute(
            CreateListingInput(
                owner_id=actor.id,
                title=body.title,
                price=body.price,
                description=body.description,
                category=body.category,
            )
        )
        return _listing_to_response(listing).model_dump(mode="json")

    result = await boundary.execute(
        user_id=actor.id, key=idempotency_key, scope="POST /listings", operation=_create
    )
    return replayable_response(result, status.HTTP_201_CREATED)


@router.get("", response_model=PaginatedListingsResponse)
async def list_listings(
    status_filter: ListingStatus | None = Query(default=None, alias="status"),
    owner_id: UUID | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    settings: Settings = Depends(get_settings),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> PaginatedListingsResponse:
    """List listings with optional filtering."""
    limit = page_limit(limit, settings)
    async with uow_factory() as uow:
        listings, total = await uow.listings.list_all(
            status=status_filter, owner_id=owner_id, limit=limit, offset=offset
        )
    return PaginatedListingsResponse(
        listings=[_listing_to_response(item) for item in listings],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{listing_id}", response_model=ListingResponse)
async def get_listing(
    listing_id: UUID,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> ListingResponse:
    async with uow_factory() as uow:
        listing = await uow.listings.get_by_id(listing_id)
    if listing is None:
        raise NotFoundError(f"Listing {listing_id} not found.")
    return _listing_to_response(listing)


@router.post("/{listing_id}/transition", response_model=ListingResponse)
async def transition_listing(
    listing_id: UUID,
    body: ListingTransitionBody,
    actor: Actor = Depends(get_actor),
    use_case: TransitionListingState = Depends(get_transition_listing_use_case),
    boundary: IdempotencyBoundary = Depends(get_idempotency_boundary),
    idempotency_key: str | None = Depends(get_idempotency_key),
) -> JSONResponse:
    async def _transition() -> dict:  # type: ignore[type-arg]
        output = await use_case.execute(
            TransitionListingStateInput(
                listing_id=listing_id,
                event=body.event,
                actor_id=actor.id,
                actor_role=actor.role,
                reason=body.reason,
            )
        )
        return _listing_to_response(output.listing).model_dump(mode="json")

    result = await boundary.execute(
        user_id=actor.id,
        key=idempotency_key,
        scope=f"POST /listings/{listing_id}/transition",
        operation=_transition,
    )
    return replayable_response(result, status.HTTP_200_OK)


@router.get("/{listing_id}/history", response_model=EntityHistoryResponse)
async def get_listing_history(
    listing_id: UUID,
    actor: Actor = Depends(get_actor),
    use_case: GetEntityHistory = Depends(get_entity_history_use_case),
) -> EntityHistoryResponse:
    output = await use_case.execute(
        GetEntityHistoryInput(
            entity_type="listing",
            entity_id=listing_id,
            actor_id=actor.id,
            actor_role=actor.role,
        )
    )
    return EntityHistoryResponse(
        entity_id=output.entity_id,
        history=[AuditEntryResponse.model_validate(entry) for entry in output.history],
    )
