from enum import Enum


class ActorRole(str, Enum):
    STUDENT = "STUDENT"
    ADMIN = "ADMIN"
