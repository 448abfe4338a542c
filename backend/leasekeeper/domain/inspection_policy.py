# backend/leasekeeper/domain/inspection_policy.py
from __future__ import annotations

from typing import Optional

from .statuses import InspectionStatus

# -----------------------------------------------------------------------------
# Inspection outcome decisions
# -----------------------------------------------------------------------------
# Neither workflow currently distinguishes a failed inspection:
#   - a clearance inspection is always recorded as Passed
#   - a maintenance inspection always hands the property back
# Both rules live here so a real pass/fail decision (e.g. keeping the property
# under maintenance on a failed inspection) is a change to this module only.
# -----------------------------------------------------------------------------


def clearance_inspection_status(feedback: Optional[str]) -> InspectionStatus:
    return InspectionStatus.PASSED


def maintenance_inspection_restores_property(feedback: Optional[str]) -> bool:
    return True
