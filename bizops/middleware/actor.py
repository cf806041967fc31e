"""Attach the acting user's identity and org role to each request.

Identity and role resolution happen upstream (SSO gateway or API proxy),
which forwards them as headers. Requests without a role get an anonymous
actor with no role, so role-gated services deny them.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    """Who is performing an action. ``role`` is the org role (owner, admin, member...)."""

    id: int | None = None
    display: str = ""
    role: str = ""

    @property
    def label(self):
        return self.display or (f"User #{self.id}" if self.id is not None else "System")


SYSTEM_ACTOR = Actor(id=None, display="System", role="owner")


class ActorMiddleware:
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.actor = actor_from_headers(request.headers)
        return self.get_response(request)


def actor_from_headers(headers):
    raw_id = headers.get("X-Actor-Id", "")
    try:
        actor_id = int(raw_id)
    except ValueError:
        actor_id = None
    return Actor(
        id=actor_id,
        display=headers.get("X-Actor-Name", ""),
        role=headers.get("X-Actor-Role", "").strip().lower(),
    )
