"""
Risk classification for administrative operations.

Risk class is computed from what an operation does to the store, not from
what the caller claims; destructive operations require confirmation.
"""

from __future__ import annotations

from enum import Enum


class RiskClass(str, Enum):
    READ_ONLY = "read_only"  # Catalog queries, exports
    APPEND_ONLY = "append_only"  # Publishes new identities only
    MUTATION_REVERSIBLE = "mutation_reversible"  # Deploy state changes
    MUTATION_DESTRUCTIVE = "mutation_destructive"  # Removes or overwrites artifacts


def compute_risk(operation: str, *, force: bool = False, delete: bool = False) -> tuple[RiskClass, list[str]]:
    """
    Compute risk class and a short explanation list.

    Unknown operations are treated as destructive.
    """
    op = (operation or "").strip().lower()

    if op in {"vocabulary.list", "policy.list", "vocabulary.export", "policy.export", "vocabulary.dependents"}:
        return (RiskClass.READ_ONLY, ["catalog query only"])

    if op in {"vocabulary.replace", "policy.replace"}:
        if force:
            return (RiskClass.MUTATION_DESTRUCTIVE, ["--force removes existing artifacts with the same identity"])
        return (RiskClass.APPEND_ONLY, ["publishes new identities; aborts on conflict"])

    if op in {"policy.deploy", "policy.undeploy"}:
        return (RiskClass.MUTATION_REVERSIBLE, ["changes deployment state only"])

    if op == "policy.remove":
        if delete:
            return (RiskClass.MUTATION_DESTRUCTIVE, ["deletes the policy from the store"])
        return (RiskClass.MUTATION_REVERSIBLE, ["undeploys the policy; record is kept"])

    if op == "vocabulary.remove":
        reasons = ["deletes the vocabulary from the store"]
        if force:
            reasons.append("--force also removes dependent policies")
        return (RiskClass.MUTATION_DESTRUCTIVE, reasons)

    return (RiskClass.MUTATION_DESTRUCTIVE, ["unknown operation; treated as destructive"])


def requires_confirmation(operation: str, *, force: bool = False, delete: bool = False) -> bool:
    risk, _ = compute_risk(operation, force=force, delete=delete)
    return risk is RiskClass.MUTATION_DESTRUCTIVE
