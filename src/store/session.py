from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Union

from api.schemas import User
from store.models import SessionState


@dataclass(frozen=True)
class SetCredentials:
    user: User
    token: str


@dataclass(frozen=True)
class SetUser:
    user: User


@dataclass(frozen=True)
class SetLoading:
    loading: bool


@dataclass(frozen=True)
class Logout:
    pass


@dataclass(frozen=True)
class UpdateProfile:
    changes: Dict[str, Any] = field(default_factory=dict)


SessionAction = Union[SetCredentials, SetUser, SetLoading, Logout, UpdateProfile]
SESSION_ACTIONS = (SetCredentials, SetUser, SetLoading, Logout, UpdateProfile)


def reduce_session(state: SessionState, action: SessionAction) -> SessionState:
    """Pure session reducer. Token storage is handled by the persistence observer."""
    if isinstance(action, SetCredentials):
        if not action.token:
            raise ValueError("credentials need a non-empty token")
        return SessionState(user=action.user, token=action.token, loading=False)

    if isinstance(action, SetUser):
        return replace(state, user=action.user, loading=False)

    if isinstance(action, SetLoading):
        return replace(state, loading=action.loading)

    if isinstance(action, Logout):
        return SessionState()

    if isinstance(action, UpdateProfile):
        if state.user is None:
            return state
        return replace(state, user=state.user.model_copy(update=action.changes))

    raise TypeError(f"not a session action: {action!r}")
