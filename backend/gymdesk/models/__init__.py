from gymdesk.models.user import User, RoleEnum
from gymdesk.models.customer import Customer, GenderEnum, MembershipStatusEnum
from gymdesk.models.payment import Payment

__all__ = [
    "User",
    "RoleEnum",
    "Customer",
    "GenderEnum",
    "MembershipStatusEnum",
    "Payment",
]
