from dataclasses import dataclass

from ..models import ReservationStatus


@dataclass(frozen=True)
class Actor:
    user_id: int
    is_admin: bool = False

    def owns(self, owner_id: int) -> bool:
        return self.user_id == owner_id


def can_transition(*, actor_is_admin: bool, actor_owns_reservation: bool, requested: ReservationStatus) -> bool:
    """Admins may set any status; participants may only cancel their own reservation."""
    if actor_is_admin:
        return True
    if not actor_owns_reservation:
        return False
    return requested == ReservationStatus.CANCELED


def can_remove(*, actor_is_admin: bool, actor_owns_reservation: bool) -> bool:
    return actor_is_admin or actor_owns_reservation
