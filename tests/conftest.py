"""Shared fixtures: a small in-memory marketplace with a seller, two buyers and an admin."""
from dataclasses import dataclass, replace
from decimal import Decimal

import pytest

from campus_exchange.domain.entities.exchange_request import ExchangeRequest
from campus_exchange.domain.entities.listing import Listing
from campus_exchange.domain.entities.user_account import UserAccount
from campus_exchange.domain.enums.actor_role import ActorRole
from campus_exchange.domain.enums.listing_status import ListingStatus
from campus_exchange.domain.enums.request_status import RequestStatus
from campus_exchange.infrastructure.memory.database import InMemoryDatabase
from campus_exchange.infrastructure.memory.unit_of_work import InMemoryUnitOfWork


@dataclass
class Marketplace:
    db: InMemoryDatabase
    seller: UserAccount
    buyer: UserAccount
    other_buyer: UserAccount
    admin: UserAccount
    listing: Listing

    def uow_factory(self) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(self.db)

    def add_request(
        self,
        status: RequestStatus = RequestStatus.SENT,
        *,
        version: int = 0,
        buyer: UserAccount | None = None,
        listing: Listing | None = None,
    ) -> ExchangeRequest:
        listing = listing or self.listing
        request = ExchangeRequest(
            listing_id=listing.id,
            buyer_id=(buyer or self.buyer).id,
            seller_id=listing.owner_id,
            status=status,
            version=version,
        )
        self.db.load(request)
        return request

    def add_listing(self, status: ListingStatus = ListingStatus.APPROVED) -> Listing:
        listing = Listing(owner_id=self.seller.id, title="Desk lamp", price=Decimal("8.00"), status=status)
        self.db.load(listing)
        return listing

    def set_listing_status(self, status: ListingStatus, listing: Listing | None = None) -> None:
        listing_id = (listing or self.listing).id
        self.db.listings[listing_id] = replace(self.db.listings[listing_id], status=status)

    def listing_status(self, listing: Listing | None = None) -> ListingStatus:
        return self.db.listings[(listing or self.listing).id].status

    def request(self, request: ExchangeRequest) -> ExchangeRequest:
        return self.db.requests[request.id]

    def user(self, user: UserAccount) -> UserAccount:
        return self.db.users[user.id]


@pytest.fixture()
def market() -> Marketplace:
    db = InMemoryDatabase()
    seller = UserAccount(display_name="Sam Seller")
    buyer = UserAccount(display_name="Bo Buyer")
    other_buyer = UserAccount(display_name="Kit Buyer")
    admin = UserAccount(display_name="Ada Admin", role=ActorRole.ADMIN)
    listing = Listing(
        owner_id=seller.id,
        title="Calculus textbook",
        price=Decimal("25.00"),
        status=ListingStatus.APPROVED,
    )
    db.load(seller, buyer, other_buyer, admin, listing)
    return Marketplace(
        db=db,
        seller=seller,
        buyer=buyer,
        other_buyer=other_buyer,
        admin=admin,
        listing=listing,
    )
