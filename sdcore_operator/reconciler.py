"""Routing of NF deployments to the reconciler for their network function."""

from __future__ import annotations

import logging

from .amf.reconciler import AMFDeploymentReconciler
from .common import is_provider_sdcore, is_provider_sdcore_upf
from .kube import InMemoryClient, NFDeployment, NotFoundError, Request, Result, Scheme
from .smf.reconciler import SMFDeploymentReconciler
from .upf.reconciler import UPFDeploymentReconciler

_log = logging.getLogger(__name__)

SMF_DEPLOYMENT_NAME = "test-smf"
AMF_DEPLOYMENT_NAME = "test-amf"


class NFDeploymentReconciler:
    """Dispatches NF deployments to the UPF, SMF or AMF reconciler."""

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

        provider = nf_deployment.provider
        if is_provider_sdcore_upf(provider):
            _log.info("Routing to UPF reconciler")
            return UPFDeploymentReconciler(self.client, self.scheme).reconcile(request)
        if is_provider_sdcore(provider):
            if nf_deployment.name == SMF_DEPLOYMENT_NAME:
                _log.info("Routing to SMF reconciler")
                return SMFDeploymentReconciler(self.client, self.scheme).reconcile(request)
            if nf_deployment.name == AMF_DEPLOYMENT_NAME:
                _log.info("Routing to AMF reconciler")
                return AMFDeploymentReconciler(self.client, self.scheme).reconcile(request)

        _log.info("NFDeployment NOT for SDCore or unsupported type (provider %s)", provider)
        return Result()