from enum import Enum


class TrustStatus(str, Enum):
    GOOD_STANDING = "GOOD_STANDING"
    REVIEW_REQUIRED = "REVIEW_REQUIRED"
    RESTRICTED = "RESTRICTED"
