from enum import Enum


class AuditAction(str, Enum):
    LISTING_CREATE = "LISTING_CREATE"
    LISTING_STATUS_UPDATE = "LISTING_STATUS_UPDATE"
    REQUEST_CREATE = "REQUEST_CREATE"
    REQUEST_EVENT = "REQUEST_EVENT"
    DISPUTE_CREATE = "DISPUTE_CREATE"
    DISPUTE_STATUS_UPDATE = "DISPUTE_STATUS_UPDATE"
