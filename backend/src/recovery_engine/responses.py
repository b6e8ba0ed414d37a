"""Framework-neutral response payloads for callers behind an HTTP boundary."""
from .types import RecoveryResult


def recovery_status_code(result: RecoveryResult) -> int:
    """200 for a recovered failure, 500 for an escalation."""
    return 200 if result.recovered else 500


def escalation_response(result: RecoveryResult) -> tuple[dict, int]:
    """Body and status for a failure that needs manual intervention.

    The error ID lets operators find the matching recovery log entries and
    persisted escalation record.
    """
    if result.recovered:
        raise ValueError("escalation_response() called with a recovered result")
    return {
        "error": "Service temporarily unavailable",
        "message": "Multiple recovery attempts failed. Please try again later.",
        "requiresManualIntervention": result.requires_manual_intervention,
        "errorId": result.error_id,
        "attempts": result.attempts,
    }, 500
