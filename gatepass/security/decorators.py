from __future__ import annotations

from collections.abc import Callable

from gatepass.workflow.roles import Action


def require_action(action: Action) -> Callable:
    """
    Decorator-style API.

    Implementation detail:
    - This decorator does NOT perform auth itself.
    - It attaches metadata that the global security dependency reads
      *after* routing (during dependency resolution).
    """

    def decorator(fn: Callable) -> Callable:
        setattr(fn, "__security_required_action__", Action(action))
        return fn

    return decorator
