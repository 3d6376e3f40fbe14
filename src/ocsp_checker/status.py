"""
Status mapper — classify one SingleStatusEntry.

Pure and total: every entry maps to exactly one of GOOD / REVOKED / UNKNOWN.
"""

from __future__ import annotations

from ocsp_checker.domain.models import (
    RevocationReason,
    RevokedStatus,
    SingleStatusEntry,
    StatusInfo,
)


def classify(entry: SingleStatusEntry) -> StatusInfo:
    """
    Classify an entry by its status object.

    No status object → GOOD. RevokedStatus → REVOKED with the revocation time
    and reason (UNSPECIFIED when absent). Anything else → UNKNOWN.
    `next_update` plays no part.
    """
    status = entry.status
    if status is None:
        return StatusInfo.good()
    if isinstance(status, RevokedStatus):
        reason = status.reason if status.reason is not None else RevocationReason.UNSPECIFIED
        return StatusInfo.revoked(status.revocation_time, reason)
    return StatusInfo.unknown()
