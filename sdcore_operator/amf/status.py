"""Status reporting for AMF deployments."""

from __future__ import annotations

import logging

from ..common import get_namespaced_name
from ..kube import CONDITION_FALSE, CONDITION_TRUE, Condition, InMemoryClient, NFDeployment, ObjectKey

_log = logging.getLogger(__name__)


def update_status(client: InMemoryClient, nf_deployment: NFDeployment) -> None:
    """Set the NF deployment's status from its AMF deployment and store it."""
    key = ObjectKey(nf_deployment.namespace, get_namespaced_name(nf_deployment, "amf"))
    try:
        deployment = client.get("Deployment", key)
    except Exception:
        _log.exception("Failed to get deployment for status update (%s)", nf_deployment.name)
        raise

    nf_deployment.status.observed_generation = nf_deployment.generation
    ready = deployment.get("status", {}).get("readyReplicas", 0) > 0
    if ready:
        condition = Condition("Ready", CONDITION_TRUE, "DeploymentReady", "AMF deployment is ready")
    else:
        condition = Condition(
            "Ready", CONDITION_FALSE, "DeploymentNotReady", "AMF deployment is not ready"
        )
    nf_deployment.status.conditions = [condition]

    try:
        client.update_status(nf_deployment)
    except Exception:
        _log.exception("Failed to update NFDeployment status (%s)", nf_deployment.name)
        raise