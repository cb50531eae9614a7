# debenture_node/runtime/__init__.py
"""
Debenture runtime package
Provides the share vault, governance engine and the ledger they run against.
"""

from debenture_node.runtime.errors import DebentureError
from debenture_node.runtime.state import StateLedger
from debenture_node.runtime.events import EventLog
from debenture_node.runtime.vault import ShareVault
from debenture_node.runtime.governance import GovernanceEngine, ProposalState

__all__ = [
    "DebentureError",
    "StateLedger",
    "EventLog",
    "ShareVault",
    "GovernanceEngine",
    "ProposalState",
]
