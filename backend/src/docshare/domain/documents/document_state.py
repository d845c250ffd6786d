"""DocumentState state machine for the upload/document lifecycle

State flow:
PENDING (upload handle issued, no metadata) → FINALIZED → DELETED
Visibility toggles happen inside FINALIZED and are not state changes.
"""

from enum import Enum
from typing import Optional, Dict, List


class DocumentState(str, Enum):
    """Lifecycle state of a document as seen by the access broker"""
    PENDING = "PENDING"      # Write handle issued, descriptor not yet created
    FINALIZED = "FINALIZED"  # Descriptor persisted, readable per visibility
    DELETED = "DELETED"      # Blob and descriptor removed (terminal)


# State transition rules
ALLOWED_TRANSITIONS: Dict[Optional[DocumentState], List[DocumentState]] = {
    None: [DocumentState.PENDING],
    DocumentState.PENDING: [DocumentState.FINALIZED],
    DocumentState.FINALIZED: [DocumentState.DELETED],
    DocumentState.DELETED: [],  # Terminal
}


def can_transition(from_state: Optional[DocumentState], to_state: DocumentState) -> bool:
    """Validate if state transition is allowed

    Args:
        from_state: Current state (None before an upload is initiated)
        to_state: Target state

    Returns:
        True if transition is allowed, False otherwise

    Example:
        >>> can_transition(DocumentState.PENDING, DocumentState.FINALIZED)
        True
        >>> can_transition(DocumentState.DELETED, DocumentState.FINALIZED)
        False
    """
    return to_state in ALLOWED_TRANSITIONS.get(from_state, [])


def get_allowed_transitions(from_state: Optional[DocumentState]) -> List[DocumentState]:
    """Get list of allowed transitions from current state"""
    return ALLOWED_TRANSITIONS.get(from_state, [])
