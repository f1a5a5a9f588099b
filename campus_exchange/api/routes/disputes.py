from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse

from campus_exchange.api.dependencies import (
    Actor,
    get_actor,
    get_file_dispute_use_case,
    get_idempotency_boundary,
    get_idempotency_key,
    get_settings,
    get_transition_dispute_use_case,
    get_uow_factory,
    page_limit,
    replayable_response,
)
from campus_exchange.api.schemas.dispute_schemas import (
    DisputeResponse,
    DisputeTransitionBody,
    FileDisputeBody,
    PaginatedDisputesResponse,
)
from campus_exchange.application.errors import ForbiddenError, NotFoundError
from campus_exchange.application.idempotency import IdempotencyBoundary
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.application.use_cases.file_dispute import FileDispute, FileDisputeInput
from campus_exchange.application.use_cases.transition_dispute import (
    TransitionDispute,
    TransitionDisputeInput,
)
from campus_exchange.config import Settings
from campus_exchange.domain.enums.dispute_status import DisputeStatus

router = APIRouter(prefix="/disputes", tags=["disputes"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=DisputeResponse)
async def file_dispute(
    body: FileDisputeBody,
    actor: Actor = Depends(get_actor),
    use_case: FileDispute = Depends(get_file_dispute_use_case),
    boundary: IdempotencyBoundary = Depends(get_idempotency_boundary),
    idempotency_key: str | None = Depends(get_idempotency_key),
) -> JSONResponse:
    async def _file() -> dict:  # type: ignore[type-arg]
        dispute = await use_case.execute(
            FileDisputeInput(
                initiator_id=actor.id,
                initiator_role=actor.role,
                target_id=body.target_id,
                type=body.type,
                description=body.description,
                request_id=body.request_id,
                listing_id=body.listing_id,
                idempotency_key=idempotency_key,
            )
        )
        return DisputeResponse.model_validate(dispute).model_dump(mode="json")

    result = await boundary.execute(
        user_id=actor.id, key=idempotency_key, scope="POST /disputes", operation=_file
    )
    return replayable_response(result, status.HTTP_201_CREATED)


@router.get("", response_model=PaginatedDisputesResponse)
async def list_disputes(
    status_filter: DisputeStatus | None = Query(default=None, alias="status"),
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(get_actor),
    settings: Settings = Depends(get_settings),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> PaginatedDisputesResponse:
    """List disputes the actor filed or is named in. Admins see all."""
    limit = page_limit(limit, settings)
    async with uow_factory() as uow:
        disputes, total = await uow.disputes.list_for_actor(
            None if actor.is_admin else actor.id,
            status=status_filter,
            limit=limit,
            offset=offset,
        )
    return PaginatedDisputesResponse(
        disputes=[DisputeResponse.model_validate(d) for d in disputes],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{dispute_id}", response_model=DisputeResponse)
async def get_dispute(
    dispute_id: UUID,
    actor: Actor = Depends(get_actor),
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> DisputeResponse:
    async with uow_factory() as uow:
        dispute = await uow.disputes.get_by_id(dispute_id)
    if dispute is None:
        raise NotFoundError(f"Dispute {dispute_id} not found.")
    if not actor.is_admin and actor.id not in (dispute.initiator_id, dispute.target_id):
        raise ForbiddenError("You are not involved in this dispute.")
    return DisputeResponse.model_validate(dispute)


@router.post("/{dispute_id}/transition", response_model=DisputeResponse)
async def transition_dispute(
    dispute_id: UUID,
    body: DisputeTransitionBody,
    actor: Actor = Depends(get_actor),
    use_case: TransitionDispute = Depends(get_transition_dispute_use_case),
    boundary: IdempotencyBoundary = Depends(get_idempotency_boundary),
    idempotency_key: str | None = Depends(get_idempotency_key),
) -> JSONResponse:
    async def _transition() -> dict:  # type: ignore[type-arg]
        dispute = await use_case.execute(
            TransitionDisputeInput(
                dispute_id=dispute_id,
                event=body.event,
                actor_id=actor.id,
                actor_role=actor.role,
                resolution_note=body.resolution_note,
            )
        )
        return DisputeResponse.model_validate(dispute).model_dump(mode="json")

    result = await boundary.execute(
        user_id=actor.id,
        key=idempotency_key,
        scope=f"POST /disputes/{dispute_id}/transition",
        operation=_transition,
    )
    return replayable_response(result, status.HTTP_200_OK)
