"""Reconciliation of SMF NF deployments."""

from __future__ import annotations

import logging

from ..common import get_namespaced_name, is_provider_sdcore
from ..kube import (
    InMemoryClient,
    NFDeployment,
    NotFoundError,
    ObjectKey,
    Request,
    Result,
    Scheme,
)
from .resources import reconcile_config_map, reconcile_deployment, reconcile_service
from .status import update_status

_log = logging.getLogger(__name__)

REQUEUE_AFTER_CHANGE = 10.0


class SMFDeploymentReconciler:
    """Brings the SMF resources of an NF deployment to their desired state."""

    def __init__(self, client: InMemoryClient, scheme: Scheme | None = None) -> None:
        self.client = client
        self.scheme = scheme if scheme is not None else client.scheme

    def reconcile(self, request: Request) -> Result:
        key = request.namespaced_name
        _log.info("Reconciling SMF NFDeployment %s", key)
        try:
            nf_deployment: NFDeployment = self.client.get(NFDeployment.kind, key)
        except NotFoundError:
            _log.info("Unable to fetch NFDeployment %s", key)
            return Result()

        if not is_provider_sdcore(nf_deployment.provider):
            _log.info("NFDeployment is not for SDCore, ignoring (provider %s)", nf_deployment.provider)
            return Result()

        steps = (
            ("ConfigMap", lambda: reconcile_config_map(self.client, self.scheme, nf_deployment)),
            ("Deployment", lambda: reconcile_deployment(self.client, self.scheme, nf_deployment)),
            ("Service", lambda: reconcile_service(self.client, self.scheme, nf_deployment)),
        )
        changed = False
        for what, step in steps:
            try:
                changed = step() or changed
            except Exception:
                _log.exception("Failed to reconcile %s", what)
                raise

        try:
            update_status(self.client, nf_deployment)
        except Exception:
            _log.exception("Failed to update NFDeployment status")
            raise

        if changed:
            _log.info("Resources changed, requeuing")
            return Result(requeue_after=REQUEUE_AFTER_CHANGE)

        _log.info("SMF NFDeployment reconciled successfully")
        return Result()


def get_deployment(client: InMemoryClient, nf_deployment: NFDeployment) -> dict:
    """Return the SMF deployment of an NF deployment; raise NotFoundError if absent."""
    name = get_namespaced_name(nf_deployment, "smf")
    return client.get("Deployment", ObjectKey(nf_deployment.namespace, name))