"""Stable member model used as wizard selection input."""

from __future__ import annotations

from dataclasses import dataclass

from equiduty.domain.models.turn_order import TurnOrderMember


@dataclass(frozen=True, eq=True)
class StableMemberInfo:
    """A member of a stable, as supplied by the membership collaborator.

    Attributes:
        user_id: Member's user ID.
        display_name: Display name, if the member has one.
        email: Email address, if known.
        role: Member's role in the stable (informational).
    """

    user_id: str
    display_name: str | None = None
    email: str | None = None
    role: str | None = None

    @property
    def effective_display_name(self) -> str:
        return self.display_name or self.email or self.user_id

    def as_turn_order_member(self) -> TurnOrderMember:
        return TurnOrderMember(
            user_id=self.user_id,
            user_name=self.effective_display_name,
            user_email=self.email or "",
        )
