from enum import Enum


class UserAccountType(str, Enum):
    LANDLORD = "landlord"
    TENANT = "tenant"
    ADMIN = "admin"


class PartyRole(str, Enum):
    landlord = "landlord"
    tenant = "tenant"
