from __future__ import annotations

import logging

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from gatepass.db.session import get_db
from gatepass.identity import SessionTokenValidator
from gatepass.models.security import User
from gatepass.security.auth import authenticate, extract_bearer_token, load_user
from gatepass.security.config import SecurityConfig
from gatepass.security.context import AuthzContext
from gatepass.workflow import AuthorizationMatrix, ItemReturnSubworkflow, LifecycleOrchestrator, MenuResolver
from gatepass.workflow.context import Requester
from gatepass.workflow.errors import UnknownRole

logger = logging.getLogger(__name__)


def _app_state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise RuntimeError(f"{name} not initialized. Did app startup run?")
    return value


def get_security_config(request: Request) -> SecurityConfig:
    return _app_state(request, "security_config")


def get_token_validator(request: Request) -> SessionTokenValidator:
    return _app_state(request, "token_validator")


def get_orchestrator(request: Request) -> LifecycleOrchestrator:
    return _app_state(request, "orchestrator")


def get_returns(request: Request) -> ItemReturnSubworkflow:
    return _app_state(request, "returns")


def get_menu_resolver(request: Request) -> MenuResolver:
    return _app_state(request, "menu_resolver")


def get_matrix(orchestrator: LifecycleOrchestrator = Depends(get_orchestrator)) -> AuthorizationMatrix:
    return orchestrator.matrix


def get_current_user(request: Request) -> User:
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def get_authz(request: Request) -> AuthzContext:
    authz = getattr(request.state, "authz", None)
    if authz is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return authz


def get_requester(authz: AuthzContext = Depends(get_authz)) -> Requester:
    return authz.requester


def enforce_security(
    request: Request,
    config: SecurityConfig = Depends(get_security_config),
    validator: SessionTokenValidator = Depends(get_token_validator),
    matrix: AuthorizationMatrix = Depends(get_matrix),
    db: Session = Depends(get_db, use_cache=False),
) -> None:
    """
    Global security dependency (configuration-driven route guard).

    Runs after routing, so decorator metadata on the endpoint is visible too.
    Route rules name an Action; the caller's stored role must be granted it
    by the same AuthorizationMatrix the workflow core uses.
    """

    path = request.url.path
    method = request.method.upper()

    rule = config.match(path, method)

    endpoint = request.scope.get("endpoint")
    decorator_action = getattr(endpoint, "__security_required_action__", None) if endpoint else None

    auth_required = rule.auth_required or decorator_action is not None
    if not auth_required:
        return

    token = extract_bearer_token(request, config)
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

    claims = authenticate(token, validator)
    user = load_user(db, claims.service_no)

    try:
        requester = Requester.of(user.service_no, user.role, user.name, user.branches or ())
    except UnknownRole as exc:
        logger.warning("User has an unrecognized role service_no=%s role=%r", user.service_no, user.role)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=exc.message) from exc

    request.state.user = user

    required = [a for a in (rule.action, decorator_action) if a is not None]
    for action in required:
        if not matrix.is_permitted(requester.role, action):
            logger.info(
                "Route denied path=%s method=%s service_no=%s role=%s action=%s",
                path,
                method,
                requester.service_no,
                requester.role.value,
                action.value,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role {requester.role.value!r} is not permitted to {action.value}",
            )

    request.state.authz = AuthzContext(
        user_id=user.id,
        requester=requester,
        permitted_actions=matrix.permitted_actions(requester.role),
        required_action=decorator_action or rule.action,
    )
