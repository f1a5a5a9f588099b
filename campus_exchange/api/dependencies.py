"""
FastAPI dependency injection wiring.

Storage, the idempotency store and the trust policy are built once per app
in the lifespan and kept on ``app.state``; each dependency below assembles
a use case from them, keeping the route handlers thin.
"""
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

from campus_exchange.application.idempotency import IdempotencyBoundary, IdempotentResult
from campus_exchange.application.interfaces.trust_policy import TrustPolicy
from campus_exchange.application.interfaces.unit_of_work import UnitOfWorkFactory
from campus_exchange.application.use_cases.apply_request_event import ApplyRequestEvent
from campus_exchange.application.use_cases.create_listing import CreateListing
from campus_exchange.application.use_cases.create_request import CreateRequest
from campus_exchange.application.use_cases.file_dispute import FileDispute
from campus_exchange.application.use_cases.get_entity_history import GetEntityHistory
from campus_exchange.application.use_cases.transition_dispute import TransitionDispute
from campus_exchange.application.use_cases.transition_listing_state import (
    TransitionListingState,
)
from campus_exchange.config import Settings
from campus_exchange.domain.enums.actor_role import ActorRole

REPLAY_HEADER = "x-idempotency-replay"


@dataclass(frozen=True)
class Actor:
    """Identity supplied by the upstream authentication layer."""

    id: UUID
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role is ActorRole.ADMIN


# ---- Low-level dependencies ------------------------------------------------

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_uow_factory(request: Request) -> UnitOfWorkFactory:
    return request.app.state.uow_factory


def get_trust_policy(request: Request) -> TrustPolicy:
    return request.app.state.trust_policy


def get_actor(
    x_actor_id: UUID | None = Header(default=None),
    x_actor_role: ActorRole = Header(default=ActorRole.STUDENT),
) -> Actor:
    if x_actor_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing actor identity.")
    return Actor(id=x_actor_id, role=x_actor_role)


def get_idempotency_key(
    request: Request, settings: Settings = Depends(get_settings)
) -> str | None:
    return request.headers.get(settings.idempotency_header) or None


def get_idempotency_boundary(
    request: Request, settings: Settings = Depends(get_settings)
) -> IdempotencyBoundary:
    return IdempotencyBoundary(
        request.app.state.idempotency_store,
        ttl=timedelta(hours=settings.idempotency_ttl_hours),
    )


def page_limit(limit: int | None, settings: Settings) -> int:
    return min(limit or settings.pagination_default_limit, settings.pagination_max_limit)


def replayable_response(result: IdempotentResult, status_code: int) -> JSONResponse:
    headers = {REPLAY_HEADER: "true"} if result.replayed else None
    return JSONResponse(content=result.payload, status_code=status_code, headers=headers)


# ---- Use-case dependencies -------------------------------------------------

def get_apply_request_event_use_case(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> ApplyRequestEvent:
    return ApplyRequestEvent(uow_factory)


def get_create_request_use_case(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    trust_policy: TrustPolicy = Depends(get_trust_policy),
) -> CreateRequest:
    return CreateRequest(uow_factory, trust_policy)


def get_create_listing_use_case(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> CreateListing:
    return CreateListing(uow_factory)


def get_transition_listing_use_case(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> TransitionListingState:
    return TransitionListingState(uow_factory)


def get_entity_history_use_case(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> GetEntityHistory:
    return GetEntityHistory(uow_factory)


def get_file_dispute_use_case(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    apply_event: ApplyRequestEvent = Depends(get_apply_request_event_use_case),
) -> FileDispute:
    return FileDispute(uow_factory, apply_event)


def get_transition_dispute_use_case(
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
    apply_event: ApplyRequestEvent = Depends(get_apply_request_event_use_case),
) -> TransitionDispute:
    return TransitionDispute(uow_factory, apply_event)
