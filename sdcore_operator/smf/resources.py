"""Kubernetes resources for SMF deployments and their reconciliation."""

from __future__ import annotations

import logging
import re

from ..common import get_namespaced_name
from ..kube import (
    InMemoryClient,
    NFDeployment,
    NotFoundError,
    ObjectKey,
    Scheme,
    set_controller_reference,
)

__all__ = [
    "build_config_map",
    "build_deployment",
    "build_service",
    "deployment_equal",
    "generate_smf_config",
    "generate_smf_run_script",
    "generate_ue_routing_config",
    "reconcile_config_map",
    "reconcile_deployment",
    "reconcile_service",
    "resource_list",
    "service_equal",
]

_log = logging.getLogger(__name__)

SMF_CONTAINER_NAME = "smf"
SMF_IMAGE_NAME = "registry.opennetworking.org/docker.io/omecproject/5gc-smf:master-latest"
SMF_SERVICE_NAME = "smf-service"

SMF_PFCP_PORT_NAME = "pfcp"
SMF_SBI_PORT_NAME = "sbi"

SMF_PFCP_PORT = 8805
SMF_SBI_PORT = 8080

DEFAULT_N4_ADDRESS = "192.168.250.4"

_PORTS = (
    (SMF_PFCP_PORT_NAME, SMF_PFCP_PORT, "UDP"),
    (SMF_SBI_PORT_NAME, SMF_SBI_PORT, "TCP"),
)

_QUANTITY = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+|[numkMGTPE]|[KMGTPE]i)?$")

_RUN_SCRIPT = """#!/bin/bash
cd /free5gc
./bin/smf -c /config/smfcfg.yaml -u /config/uerouting.yaml
"""

_CONFIG_TEMPLATE = """info:
  version: 1.0.0
  description: SMF initial configuration

configuration:
  smfName: SMF
  sbi:
    scheme: http
    registerIPv4: {address}
    bindingIPv4: 0.0.0.0
    port: 8080
  serviceNameList:
    - nsmf-pdusession
    - nsmf-event-exposure
    - nsmf-oam
  snssaiInfos:
    - sNssai:
        sst: 1
        sd: 010203
      dnnInfos:
        - dnn: internet
          dns:
            ipv4: 8.8.8.8
            ipv6: 2001:4860:4860::8888
  pfcp:
    addr: {address}
    nodeID: {address}
    retransTimeout: 1
    maxRetrans: 3
  userplane_information:
    up_nodes:
      gNB1:
        type: AN
        an_ip: 192.168.250.1
      UPF:
        type: UPF
        node_id: 192.168.250.3
        up_resource_ip: 192.168.252.3
    links:
      - A: gNB1
        B: UPF
  nrfUri: http://nrf-service:8000
  urrPeriod: 10
  ulcl: false
"""

_UE_ROUTING = """info:
  version: 1.0.0
  description: Routing information for UE

ueRoutingInfo:
  - SUPI: imsi-2089300007487
    AN: 192.168.250.1
    PathList:
      - DestinationIP: 10.60.0.0/16
        UPF: !!seq
          - BranchingUPF
          - AnchorUPF1
      - DestinationIP: 10.61.0.0/16
        UPF: !!seq
          - BranchingUPF
          - AnchorUPF2

routeProfile:
  - RouteProfileID: internet
    ForwardingPolicyID: 10

pfdDataForApp:
  - applicationId: edge
    pfds:
      - pfdID: pfd1
        flowDescriptions:
          - permit out ip from 10.60.0.0/16 8080 to any
"""


def resource_list(cpu: str, memory: str) -> dict[str, str]:
    """Return a CPU and memory resource list; raise ValueError on a malformed quantity."""
    for quantity in (cpu, memory):
        if not _QUANTITY.match(quantity):
            raise ValueError(f"invalid resource quantity {quantity!r}")
    return {"cpu": cpu, "memory": memory}


def deployment_equal(a: dict, b: dict) -> bool:
    """Compare two deployments by the image of their first container."""

    def image(deployment: dict) -> str:
        return deployment["spec"]["template"]["spec"]["containers"][0].get("image", "")

    return image(a) == image(b)


def service_equal(a: dict, b: dict) -> bool:
    """Compare two services by how many ports they expose."""
    return len(a.get("spec", {}).get("ports") or []) == len(b.get("spec", {}).get("ports") or [])


def generate_smf_run_script() -> str:
    """Return the script that starts the SMF."""
    return _RUN_SCRIPT


def _n4_address(nf_deployment: NFDeployment) -> str:
    address = next(
        (i.ipv4 for i in nf_deployment.interfaces if i.name == "n4" and i.ipv4 is not None),
        "",
    )
    if not address:
        return DEFAULT_N4_ADDRESS
    if len(address) < 3:
        raise ValueError(f"n4 address {address!r} is too short to hold a prefix length")
    return address[:-3]


def generate_smf_config(nf_deployment: NFDeployment) -> str:
    """Return the SMF configuration file for an NF deployment."""
    return _CONFIG_TEMPLATE.format(address=_n4_address(nf_deployment))


def generate_ue_routing_config() -> str:
    """Return the UE routing configuration file."""
    return _UE_ROUTING


def _app_label(nf_deployment: NFDeployment) -> dict[str, str]:
    return {"app": get_namespaced_name(nf_deployment, "smf")}


def build_config_map(nf_deployment: NFDeployment) -> dict:
    """Return the desired SMF config map."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": get_namespaced_name(nf_deployment, "smf-config"),
            "namespace": nf_deployment.namespace,
            "labels": _app_label(nf_deployment),
        },
        "data": {
            "smf-run.sh": generate_smf_run_script(),
            "smfcfg.yaml": generate_smf_config(nf_deployment),
            "uerouting.yaml": generate_ue_routing_config(),
        },
    }


def build_deployment(nf_deployment: NFDeployment) -> dict:
    """Return the desired SMF deployment."""
    name = get_namespaced_name(nf_deployment, "smf")
    container = {
        "name": SMF_CONTAINER_NAME,
        "image": SMF_IMAGE_NAME,
        "ports": [
            {"name": port_name, "containerPort": port, "protocol": protocol}
            for port_name, port, protocol in _PORTS
        ],
        "command": ["/bin/bash", "/config/smf-run.sh"],
        "volumeMounts": [{"name": "smf-config", "mountPath": "/config"}],
        "env": [
            {"name": "PFCP_PORT", "value": str(SMF_PFCP_PORT)},
            {"name": "LOG_LEVEL", "value": "info"},
        ],
        "resources": {
            "requests": resource_list("500m", "512Mi"),
            "limits": resource_list("500m", "512Mi"),
        },
    }
    return {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": {"name": name, "namespace": nf_deployment.namespace, "labels": {"app": name}},
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": {"app": name}},
            "template": {
                "metadata": {"labels": {"app": name}},
                "spec": {
                    "containers": [container],
                    "volumes": [
                        {
                            "name": "smf-config",
                            "configMap": {
                                "name": get_namespaced_name(nf_deployment, "smf-config"),
                            },
                        }
                    ],
                },
            },
        },
    }


def build_service(nf_deployment: NFDeployment) -> dict:
    """Return the desired SMF service."""
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": get_namespaced_name(nf_deployment, SMF_SERVICE_NAME),
            "namespace": nf_deployment.namespace,
            "labels": _app_label(nf_deployment),
        },
        "spec": {
            "selector": _app_label(nf_deployment),
            "ports": [
                {"name": port_name, "port": port, "targetPort": port, "protocol": protocol}
                for port_name, port, protocol in _PORTS
            ],
        },
    }


def _get_existing(client: InMemoryClient, kind: str, key: ObjectKey) -> dict | None:
    try:
        return client.get(kind, key)
    except NotFoundError:
        return None


def reconcile_config_map(
    client: InMemoryClient, scheme: Scheme, nf_deployment: NFDeployment
) -> bool:
    """Create or update the SMF config map; return whether anything changed."""
    config_map = build_config_map(nf_deployment)
    set_controller_reference(nf_deployment, config_map, scheme)
    name = config_map["metadata"]["name"]

    existing = _get_existing(client, "ConfigMap", ObjectKey(nf_deployment.namespace, name))
    if existing is None:
        _log.info("Creating ConfigMap %s", name)
        client.create(config_map)
        return True

    if (existing.get("data") or {}) != config_map["data"]:
        _log.info("Updating ConfigMap %s", name)
        existing["data"] = config_map["data"]
        client.update(existing)
        return True
    return False


def reconcile_deployment(
    client: InMemoryClient, scheme: Scheme, nf_deployment: NFDeployment
) -> bool:
    """Create or update the SMF deployment; return whether anything changed."""
    deployment = build_deployment(nf_deployment)
    set_controller_reference(nf_deployment, deployment, scheme)
    name = deployment["metadata"]["name"]

    existing = _get_existing(client, "Deployment", ObjectKey(nf_deployment.namespace, name))
    if existing is None:
        _log.info("Creating Deployment %s", name)
        client.create(deployment)
        return True

    if not deployment_equal(existing, deployment):
        _log.info("Updating Deployment %s", name)
        existing["spec"] = deployment["spec"]
        client.update(existing)
        return True
    return False


def reconcile_service(client: InMemoryClient, scheme: Scheme, nf_deployment: NFDeployment) -> bool:
    """Create or update the SMF service; return whether anything changed."""
    service = build_service(nf_deployment)
    set_controller_reference(nf_deployment, service, scheme)
    name = service["metadata"]["name"]

    existing = _get_existing(client, "Service", ObjectKey(nf_deployment.namespace, name))
    if existing is None:
        _log.info("Creating Service %s", name)
        client.create(service)
        return True

    if not service_equal(existing, service):
        _log.info("Updating Service %s", name)
        spec = service["spec"]
        spec["clusterIP"] = existing.get("spec", {}).get("clusterIP", "")
        existing["spec"] = spec
        client.update(existing)
        return True
    return False