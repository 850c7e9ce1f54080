# ABOUTME: Reconciliation package: folds anonymous sessions into signed-in accounts.
# ABOUTME: Exports the reconciler, identity resolvers and result types.

from anonymous_carryover.reconcile.identity import IdentityResolver, SubjectIdentityResolver
from anonymous_carryover.reconcile.reconciler import ActionReconciler, SearchHistorySink
from anonymous_carryover.reconcile.results import (
    ActionFailure,
    ActionResult,
    ActionSuccess,
    ReconcileReason,
    ReconcileResult,
)

__all__ = [
    "ActionFailure",
    "ActionReconciler",
    "ActionResult",
    "ActionSuccess",
    "IdentityResolver",
    "ReconcileReason",
    "ReconcileResult",
    "SearchHistorySink",
    "SubjectIdentityResolver",
]
