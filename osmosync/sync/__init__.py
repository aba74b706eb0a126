"""Reconciliation engine and the session controller that drives it."""

from osmosync.sync.reconciler import build_plan, plan_import, plan_projection
from osmosync.sync.session import SyncSessionController

__all__ = ["SyncSessionController", "build_plan", "plan_import", "plan_projection"]
