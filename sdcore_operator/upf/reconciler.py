"""Reconciliation of UPF NF deployments."""

from __future__ import annotations

import logging

from ..common import get_namespaced_name, is_provider_sdcore_upf
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
from .status import create_nf_deployment_status

_log = logging.getLogger(__name__)

REQUEUE_AFTER_MISSING = 10.0
REQUEUE_AFTER_ERROR = 30.0


class UPFDeploymentReconciler:
    """Brings the UPF resources of an NF deployment to their desired state.

    Failures propagate as exceptions; callers are expected to retry after
    ``REQUEUE_AFTER_ERROR`` seconds.
    """

    def __init__(self, client: InMemoryClient, scheme: Scheme | None = None) -> None:
        self.client = client
        self.scheme = scheme if scheme is not None else client.scheme

    def reconcile(self, request: Request) -> Result:
        key = request.namespaced_name
        try:
            nf_deployment: NFDeployment = self.client.get(NFDeployment.kind, key)
        except NotFoundError:
            _log.info(
                "NFDeployment resource %s not found, ignoring because object must be deleted", key
            )
            return Result()
        except Exception:
            _log.exception("Failed to get NFDeployment %s", key)
            raise

        if not is_provider_sdcore_upf(nf_deployment.provider):
            _log.info(
                "NFDeployment is not for SDCore UPF, ignoring (provider %s)",
                nf_deployment.provider,
            )
            return Result()

        steps = (
            ("ConfigMap", reconcile_config_map),
            ("Deployment", reconcile_deployment),
            ("Service", reconcile_service),
        )
        for what, step in steps:
            try:
                step(self.client, self.scheme, nf_deployment)
            except Exception:
                _log.exception("Failed to reconcile %s", what)
                raise

        try:
            upf_deployment = self.get_deployment(nf_deployment)
        except NotFoundError:
            return Result(requeue_after=REQUEUE_AFTER_MISSING)
        except Exception:
            _log.exception("Failed to get Deployment")
            raise

        status, changed = create_nf_deployment_status(upf_deployment, nf_deployment)
        if changed:
            nf_deployment.status = status
            try:
                self.client.update_status(nf_deployment)
            except Exception:
                _log.exception("Failed to update NFDeployment status")
                raise

        return Result()

    def get_deployment(self, nf_deployment: NFDeployment) -> dict:
        """Return the UPF deployment of an NF deployment; raise NotFoundError if absent."""
        name = get_namespaced_name(nf_deployment, "upf")
        return self.client.get("Deployment", ObjectKey(nf_deployment.namespace, name))