from __future__ import annotations

from dataclasses import dataclass

from gatepass.workflow.context import Requester
from gatepass.workflow.roles import Action, Role


@dataclass(frozen=True)
class AuthzContext:
    """
    Per-request authorization context, attached to ``request.state``.

    ``requester`` is what the workflow core sees; the role in it is the
    stored role, normalized (legacy names resolved).
    """

    user_id: int
    requester: Requester
    permitted_actions: frozenset[Action]

    # Action named by the matched route rule or decorator, if any.
    required_action: Action | None

    @property
    def role(self) -> Role:
        return self.requester.role
