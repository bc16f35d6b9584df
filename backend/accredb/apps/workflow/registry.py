from __future__ import annotations

from accredb.apps.accreditation.enums import AccreditationStatus

from .guards import (
    guard_access_grants,
    guard_identity_documents,
    guard_revocation_reason,
)

# {from_state: {to_state: [guards]}}. Anything not listed is illegal,
# including same-state pairs. REJECTED and REVOKED loop back to PENDING
# as ordinary edges.
WORKFLOWS = {
    "accreditation": {
        "states": AccreditationStatus,
        "initial": "DRAFT",
        "transitions": {
            "DRAFT": {
                "PENDING": [guard_identity_documents, guard_access_grants],
            },
            "REJECTED": {
                "PENDING": [guard_identity_documents, guard_access_grants],
            },
            "REVOKED": {
                "PENDING": [guard_identity_documents, guard_access_grants],
            },
            "PENDING": {
                "DRAFT": [],
                "APPROVED": [guard_access_grants],
                "REJECTED": [],
            },
            "APPROVED": {
                "REVOKED": [guard_revocation_reason],
            },
        },
        "triggers": {
            ("DRAFT", "PENDING"): "submit",
            ("REJECTED", "PENDING"): "resubmit",
            ("REVOKED", "PENDING"): "resubmit",
            ("PENDING", "DRAFT"): "return_to_draft",
            ("PENDING", "APPROVED"): "approve",
            ("PENDING", "REJECTED"): "reject",
            ("APPROVED", "REVOKED"): "revoke",
        },
    },
}
