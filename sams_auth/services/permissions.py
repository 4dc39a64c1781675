"""Role-based access checks over already-authenticated users.

Guards return ``None`` to let a request through, or a ready ``JSONResponse``
(401/403) to short-circuit it. Resource checks return ``True`` or a response.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable

from fastapi.responses import JSONResponse

from sams_auth.schemas.domain import LabRequest, LabSample, User
from sams_auth.schemas.enums import ROLE_LEVELS, RequestStatus, UserRole

Guard = Callable[[User | None], JSONResponse | None]

ROLE_HIERARCHY = ROLE_LEVELS
STAFF_ROLES = frozenset({UserRole.TECHNICIAN, UserRole.LAB_MANAGER, UserRole.ADMIN})
MANAGER_ROLES = frozenset({UserRole.LAB_MANAGER, UserRole.ADMIN})


def _error(status_code: int, message: str, **extra: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def has_role(user: User, required_role: UserRole) -> bool:
    return user.role.level >= required_role.level


def has_any_role(user: User, roles: Iterable[UserRole]) -> bool:
    return any(user.role == role for role in roles)


def require_auth(user: User | None) -> JSONResponse | None:
    if user is None:
        return _error(401, "Unauthorized")
    return None


def require_role(required_role: UserRole) -> Guard:
    def guard(user: User | None) -> JSONResponse | None:
        if user is None:
            return _error(401, "Unauthorized")
        if not has_role(user, required_role):
            return _error(403, "Insufficient permissions")
        return None

    return guard


def require_any_role(roles: Iterable[UserRole]) -> Guard:
    allowed = tuple(roles)

    def guard(user: User | None) -> JSONResponse | None:
        if user is None:
            return _error(401, "Unauthorized")
        if not has_any_role(user, allowed):
            return _error(
                403,
                "Insufficient permissions",
                required=", ".join(role.value for role in allowed),
            )
        return None

    return guard


def compose_guards(*guards: Guard) -> Guard:
    """Run guards in order and return the first rejection."""

    def composed(user: User | None) -> JSONResponse | None:
        for guard in guards:
            rejection = guard(user)
            if rejection is not None:
                return rejection
        return None

    return composed


def can_access_request(user: User, request: LabRequest | None) -> bool | JSONResponse:
    if user.role in MANAGER_ROLES:
        return True
    if request is None:
        return _error(404, "Request not found")
    # Technicians see every request so they can process its samples
    if user.role == UserRole.TECHNICIAN:
        return True
    if request.user_id != user.id:
        return _error(403, "Not allowed to access this request")
    return True


def can_modify_request(user: User, request: LabRequest | None) -> bool | JSONResponse:
    if user.role in MANAGER_ROLES:
        return True
    if request is None:
        return _error(404, "Request not found")
    if request.user_id != user.id:
        return _error(403, "Not allowed to modify this request")
    if request.status != RequestStatus.PENDING:
        return _error(403, "Request has already been reviewed")
    return True


def can_modify_request_status(user: User, request: LabRequest | None) -> bool | JSONResponse:
    if user.role not in MANAGER_ROLES:
        return _error(403, "Only lab managers and admins can change request status")
    if request is None:
        return _error(404, "Request not found")
    return True


def can_access_sample(
    user: User, sample: LabSample | None, request: LabRequest | None
) -> bool | JSONResponse:
    if sample is None:
        return _error(404, "Sample not found")
    return can_access_request(user, request)


def can_modify_sample(
    user: User, sample: LabSample | None, request: LabRequest | None
) -> bool | JSONResponse:
    if sample is None:
        return _error(404, "Sample not found")
    if request is None:
        return _error(404, "Parent request not found")
    if user.role in STAFF_ROLES:
        return True
    if request.user_id == user.id:
        return True
    return _error(403, "Not allowed to modify this sample")


def can_modify_qc_status(user: User) -> bool | JSONResponse:
    if user.role in STAFF_ROLES:
        return True
    return _error(403, "Only technicians, lab managers and admins can change QC status")
