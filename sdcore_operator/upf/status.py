"""Status computation for UPF deployments."""

from __future__ import annotations

import copy

from ..kube import CONDITION_FALSE, CONDITION_TRUE, Condition, NFDeployment, NFDeploymentStatus

AVAILABLE = "Available"
READY = "Ready"


def create_nf_deployment_status(
    deployment: dict, nf_deployment: NFDeployment
) -> tuple[NFDeploymentStatus, bool]:
    """Derive the NF deployment status from a UPF deployment; return it and whether it changed."""
    observed_generation = deployment.get("metadata", {}).get("generation", 0)
    status = copy.deepcopy(nf_deployment.status)
    changed = False

    if status.observed_generation != observed_generation:
        status.observed_generation = observed_generation
        changed = True

    deployment_status = deployment.get("status", {})
    is_available = any(
        c.get("type") == AVAILABLE and c.get("status") == CONDITION_TRUE
        for c in deployment_status.get("conditions", [])
    )
    if is_available:
        available = Condition(AVAILABLE, CONDITION_TRUE, "DeploymentAvailable", "Deployment is available")
    else:
        available = Condition(
            AVAILABLE, CONDITION_FALSE, "DeploymentUnavailable", "Deployment is not available"
        )
    changed = update_condition(status.conditions, available) or changed

    all_ready = deployment_status.get("readyReplicas", 0) == deployment_status.get("replicas", 0)
    if is_available and all_ready:
        ready = Condition(READY, CONDITION_TRUE, "Ready", "UPF is ready")
    else:
        ready = Condition(READY, CONDITION_FALSE, "NotReady", "UPF is not ready")
    changed = update_condition(status.conditions, ready) or changed

    return status, changed


def update_condition(conditions: list[Condition], condition: Condition) -> bool:
    """Replace the condition of the same type if it differs, or append it; return whether it changed."""
    for i, existing in enumerate(conditions):
        if existing.type == condition.type:
            if (existing.status, existing.reason, existing.message) != (
                condition.status,
                condition.reason,
                condition.message,
            ):
                conditions[i] = condition
                return True
            return False
    conditions.append(condition)
    return True