from __future__ import annotations

"""
Error taxonomy for the vault and governance runtimes.

Every failure is a locally detected precondition violation. Nothing is
retried: the operation that raised has no effect and the caller may
resubmit after fixing the request.

Each class carries:
- `code`: stable snake_case identifier (used as HTTP `detail`)
- `status_code`: HTTP status hint used by the API layer
"""

from typing import Any, Dict, Optional


class DebentureError(RuntimeError):
    code: str = "debenture_error"
    status_code: int = 400

    def __init__(self, message: Optional[str] = None, **context: Any) -> None:
        super().__init__(message or self.code)
        self.context: Dict[str, Any] = dict(context)


# ---------------------------------------------------------------------------
# Vault
# ---------------------------------------------------------------------------


class InvalidAmount(DebentureError):
    code = "invalid_amount"


class InvalidShares(DebentureError):
    code = "invalid_shares"


class InvalidAddress(DebentureError):
    code = "invalid_address"


class InsufficientShares(DebentureError):
    code = "insufficient_shares"


class InsufficientAllowance(DebentureError):
    code = "insufficient_allowance"


class SellBlocked(DebentureError):
    code = "sell_blocked"
    status_code = 403


class TransfersBlocked(DebentureError):
    code = "transfers_blocked"
    status_code = 403


class TransferFailed(DebentureError):
    code = "transfer_failed"
    status_code = 502


class Unauthorized(DebentureError):
    code = "unauthorized"
    status_code = 403


class ReentrantCall(DebentureError):
    code = "reentrant_call"
    status_code = 409


# ---------------------------------------------------------------------------
# Governance
# ---------------------------------------------------------------------------


class NotFound(DebentureError):
    code = "not_found"
    status_code = 404


class EmptyDescription(DebentureError):
    code = "empty_description"


class InsufficientTokens(DebentureError):
    code = "insufficient_tokens"


class NotStarted(DebentureError):
    code = "not_started"


class VotingEnded(DebentureError):
    code = "voting_ended"


class AlreadyVoted(DebentureError):
    code = "already_voted"


class NoVotingPower(DebentureError):
    code = "no_voting_power"


class VotingNotEnded(DebentureError):
    code = "voting_not_ended"


class AlreadyExecuted(DebentureError):
    code = "already_executed"


class QuorumNotReached(DebentureError):
    code = "quorum_not_reached"
