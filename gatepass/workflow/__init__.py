"""
Gate pass workflow core.

Status taxonomy, the static authorization matrix, menu resolution, the
lifecycle state machine and the returnable-item sub-workflow. This package
has no dependency on other gatepass packages (db, security, routers); storage
is reached only through the ``WorkflowStore`` protocol.
"""

from .authorization import AuthorizationMatrix, Surface
from .context import Requester
from .errors import (
    Forbidden,
    InvalidRequest,
    InvalidState,
    InvalidTransition,
    MatrixConfigError,
    NotFound,
    UnknownRole,
    UnknownStatus,
    WorkflowError,
)
from .guards import TransitionAction
from .menu import MenuEntry, MenuResolver
from .orchestrator import LifecycleOrchestrator
from .records import ItemDraft, ItemRecord, ReceiverDetails, RequestDraft, RequestRecord, ReturnStatus
from .returns import ItemReturnSubworkflow
from .roles import Action, Role
from .status import Category, Outcome, Stage, Status

__all__ = [
    "Action",
    "AuthorizationMatrix",
    "Category",
    "Forbidden",
    "InvalidRequest",
    "InvalidState",
    "InvalidTransition",
    "ItemDraft",
    "ItemRecord",
    "ItemReturnSubworkflow",
    "LifecycleOrchestrator",
    "MatrixConfigError",
    "MenuEntry",
    "MenuResolver",
    "NotFound",
    "Outcome",
    "ReceiverDetails",
    "RequestDraft",
    "RequestRecord",
    "Requester",
    "ReturnStatus",
    "Role",
    "Stage",
    "Status",
    "Surface",
    "TransitionAction",
    "UnknownRole",
    "UnknownStatus",
    "WorkflowError",
]
