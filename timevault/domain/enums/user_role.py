from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"
