"""Built-in remediation strategies, one ordered list per failure category."""
import logging

from ..classification import error_message
from ..types import Context, FailureCategory, StrategyOutcome
from .backoff import ExponentialBackoff
from .base import Strategy, StrategyDependencies

logger = logging.getLogger(__name__)


# RPC errors

async def switch_to_backup_rpc(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    endpoints = list(deps.rpc_endpoints)
    if not endpoints:
        return StrategyOutcome(False, "No backup RPC endpoints configured", context)

    current = context.get("currentProvider")
    if current:
        index = endpoints.index(current) if current in endpoints else -1
        next_provider = endpoints[(index + 1) % len(endpoints)]
        return StrategyOutcome(
            success=True,
            action=f"Switched from {current} to {next_provider}",
            new_context={**context, "currentProvider": next_provider}
        )

    return StrategyOutcome(
        success=True,
        action=f"Set RPC to {endpoints[0]}",
        new_context={**context, "currentProvider": endpoints[0]}
    )


async def increase_timeout(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    current = context.get("timeout") or deps.default_timeout_ms
    new_timeout = current * 2
    return StrategyOutcome(
        success=True,
        action=f"Increased timeout from {current}ms to {new_timeout}ms",
        new_context={**context, "timeout": new_timeout}
    )


# Database errors

async def reconnect_database(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    if deps.reconnect_database is not None:
        await deps.reconnect_database(context)
    return StrategyOutcome(
        success=True,
        action="Reconnected to database",
        new_context={**context, "reconnected": True}
    )


async def repair_schema(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    if deps.repair_schema is not None:
        await deps.repair_schema(context)
    return StrategyOutcome(
        success=True,
        action="Verified and repaired database schema",
        new_context={**context, "schemaChecked": True}
    )


# Address validation errors

async def autocorrect_address(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    address = context.get("address")
    if not isinstance(address, str) or not address:
        return StrategyOutcome(False, "No address in context to correct", context)

    chain_type = context.get("type")
    corrected = address
    if chain_type == "ethereum" and not corrected.startswith("0x"):
        corrected = "0x" + corrected

    try:
        corrected = deps.address_normalizer(corrected, chain_type)
    except (ValueError, TypeError) as e:
        # Keep the prefixed form when the normalizer rejects the address.
        logger.debug(f"Address normalizer rejected {corrected}: {e}")

    return StrategyOutcome(
        success=corrected != address,
        action=f"Corrected address from {address} to {corrected}",
        new_context={**context, "address": corrected}
    )


async def alternative_validation(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    return StrategyOutcome(
        success=True,
        action="Used alternative validation method",
        new_context={**context, "validationMethod": "alternative"}
    )


# Network timeouts

async def exponential_backoff_retry(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    attempt = int(context.get("retryAttempt") or 0)
    backoff = ExponentialBackoff(base=deps.backoff_base_ms, cap=deps.backoff_cap_ms)
    delay_ms = backoff.calculate_delay(attempt)

    await deps.sleep(delay_ms / 1000.0)

    return StrategyOutcome(
        success=True,
        action=f"Waited {delay_ms:g}ms before retry (attempt {attempt + 1})",
        new_context={**context, "retryAttempt": attempt + 1}
    )


async def switch_endpoint(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    return StrategyOutcome(
        success=True,
        action="Switched to alternative endpoint",
        new_context={**context, "endpoint": "alternative"}
    )


# API validation errors

async def sanitize_and_retry(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    sanitized = deps.input_sanitizer(context.get("input"))
    return StrategyOutcome(
        success=True,
        action="Sanitized input and retrying",
        new_context={**context, "input": sanitized}
    )


async def apply_defaults(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    return StrategyOutcome(
        success=True,
        action="Applied default values for missing fields",
        new_context={**context, "useDefaults": True}
    )


# Generic fallback

async def log_and_retry(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    logger.error(f"Generic error occurred: {type(error).__name__}: {error_message(error)}")
    return StrategyOutcome(
        success=True,
        action="Logged error and preparing retry",
        new_context=dict(context)
    )


async def reset_state(error: BaseException, context: Context, deps: StrategyDependencies) -> StrategyOutcome:
    return StrategyOutcome(
        success=True,
        action="Reset context state",
        new_context={}
    )


DEFAULT_STRATEGIES: dict[FailureCategory, list[Strategy]] = {
    FailureCategory.RPC_ERROR: [
        Strategy("Switch to Backup RPC", 1, switch_to_backup_rpc),
        Strategy("Increase Timeout and Retry", 2, increase_timeout),
    ],
    FailureCategory.DATABASE_ERROR: [
        Strategy("Reconnect to Database", 1, reconnect_database),
        Strategy("Check and Repair Database Schema", 2, repair_schema),
    ],
    FailureCategory.ADDRESS_VALIDATION_ERROR: [
        Strategy("Auto-correct Address Format", 1, autocorrect_address),
        Strategy("Validate with Alternative Method", 2, alternative_validation),
    ],
    FailureCategory.NETWORK_TIMEOUT: [
        Strategy("Exponential Backoff Retry", 1, exponential_backoff_retry),
        Strategy("Switch to Alternative Endpoint", 2, switch_endpoint),
    ],
    FailureCategory.API_VALIDATION_ERROR: [
        Strategy("Sanitize and Retry", 1, sanitize_and_retry),
        Strategy("Use Default Values", 2, apply_defaults),
    ],
    FailureCategory.GENERIC_ERROR: [
        Strategy("Log and Retry", 1, log_and_retry),
        Strategy("Reset State and Retry", 2, reset_state),
    ],
}
