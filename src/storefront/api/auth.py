"""Request principal resolved from identity headers.

Token verification happens upstream; by the time a request reaches the
storefront it carries the caller's id and role.
"""

from dataclasses import dataclass

from fastapi import Depends, Header

from storefront.errors import Unauthorized


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str = "customer"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def current_principal(
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
) -> Principal:
    if not x_user_id:
        raise Unauthorized({"auth": ["Not authorized, no user"]})
    return Principal(user_id=x_user_id, role=(x_user_role or "customer").lower())


def require_admin(principal: Principal = Depends(current_principal)) -> Principal:
    if not principal.is_admin:
        raise Unauthorized({"role": ["Admin access required"]})
    return principal
