from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from store.models import SessionState


class GateDecision(str, Enum):
    RENDER = "render"
    LOGIN = "login"
    HOME = "home"
    LOADING = "loading"


@dataclass(frozen=True)
class GateResult:
    decision: GateDecision
    # where to go back to after a successful login
    return_to: Optional[str] = None


def gate(
    session: SessionState,
    requires_admin: bool = False,
    location: Optional[str] = None,
) -> GateResult:
    """
    Decide what a protected screen should do before it renders.

    While the stored session is still being restored nothing is decided yet,
    so a user with a valid token is never bounced to login on startup.
    """
    if session.loading:
        return GateResult(GateDecision.LOADING)
    if not session.is_authenticated:
        return GateResult(GateDecision.LOGIN, return_to=location)
    if requires_admin and not session.is_admin:
        return GateResult(GateDecision.HOME)
    return GateResult(GateDecision.RENDER)
