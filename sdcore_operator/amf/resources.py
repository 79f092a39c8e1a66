"""Kubernetes resources for AMF deployments and their reconciliation."""

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

_log = logging.getLogger(__name__)

AMF_CONTAINER_NAME = "amf"
AMF_IMAGE_NAME = "registry.opennetworking.org/docker.io/omecproject/5gc-amf:rel-1.6.4"
AMF_SERVICE_NAME = "amf-service"

AMF_NGAPP_PORT_NAME = "ngapp"
AMF_SBI_PORT_NAME = "sbi"
AMF_SCTP_GRPC_PORT_NAME = "sctp-grpc"
AMF_PROM_PORT_NAME = "prometheus"

AMF_NGAPP_PORT = 38412
AMF_SBI_PORT = 8080
AMF_SCTP_GRPC_PORT = 9000
AMF_PROM_PORT = 9089

DEFAULT_N2_ADDRESS = "192.168.251.5"

_PORTS = (
    (AMF_NGAPP_PORT_NAME, AMF_NGAPP_PORT, "SCTP"),
    (AMF_SBI_PORT_NAME, AMF_SBI_PORT, "TCP"),
    (AMF_SCTP_GRPC_PORT_NAME, AMF_SCTP_GRPC_PORT, "TCP"),
    (AMF_PROM_PORT_NAME, AMF_PROM_PORT, "TCP"),
)

_QUANTITY = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([KMGTPE]i|[numkMGTPE]|[eE][+-]?\d+)?$")

_RUN_SCRIPT = """#!/bin/bash
cd /free5gc
./bin/amf -c /opt/amfcfg.yaml
"""

_CONFIG_TEMPLATE = """info:
  version: 1.0.0
  description: AMF initial configuration

configuration:
  amfName: AMF
  ngapIpList:
    - {address}
  sbi:
    scheme: http
    registerIPv4: {address}
    bindingIPv4: 0.0.0.0
    port: 8080
  serviceNameList:
    - namf-comm
    - namf-evts
    - namf-mt
    - namf-loc
    - namf-oam
  servedGuamiList:
    - plmnId:
        mcc: 208
        mnc: 93
      amfId: cafe00
  supportTaiList:
    - plmnId:
        mcc: 208
        mnc: 93
      tac: 1
  plmnSupportList:
    - plmnId:
        mcc: 208
        mnc: 93
      snssaiList:
        - sst: 1
          sd: 010203
        - sst: 1
          sd: 112233
  supportDnnList:
    - internet
  nrfUri: http://nrf-service:8000
  security:
    integrityOrder:
      - NIA2
    cipheringOrder:
      - NEA0
  networkName:
    full: free5GC
    short: free
  ngapPort: 38412
  sctpGrpcPort: 9000
  enableSctpLb: false
  t3502: 720
  t3512: 3600
  non3gppDeregistrationTimer: 3240
"""


def resource_list(cpu: str, memory: str) -> dict[str, str]:
    """Return a resource list with the given CPU and memory quantities."""
    for quantity in (cpu, memory):
        if not _QUANTITY.match(quantity):
            raise ValueError(f"quantities must match the regular expression: {quantity!r}")
    return {"cpu": cpu, "memory": memory}


def deployment_equal(a: dict, b: dict) -> bool:
    """Compare two deployments by the image of their first container."""
    return (
        a["spec"]["template"]["spec"]["containers"][0]["image"]
        == b["spec"]["template"]["spec"]["containers"][0]["image"]
    )


def service_equal(a: dict, b: dict) -> bool:
    """Compare two services by the number of their ports."""
    return len(a.get("spec", {}).get("ports", [])) == len(b.get("spec", {}).get("ports", []))


def generate_amf_run_script() -> str:
    """Return the script that starts the AMF."""
    return _RUN_SCRIPT


def _n2_address(nf_deployment: NFDeployment) -> str:
    address = next(
        (i.ipv4 for i in nf_deployment.interfaces if i.name == "n2" and i.ipv4 is not None),
        "",
    )
    if not address:
        return DEFAULT_N2_ADDRESS
    if len(address) < 3:
        raise ValueError(f"n2 address {address!r} is too short to hold a prefix length")
    return address[:-3]


def generate_amf_config(nf_deployment: NFDeployment) -> str:
    """Return the AMF configuration file for an NF deployment."""
    return _CONFIG_TEMPLATE.format(address=_n2_address(nf_deployment))


def _app_label(nf_deployment: NFDeployment) -> dict[str, str]:
    return {"app": get_namespaced_name(nf_deployment, "amf")}


def build_config_map(nf_deployment: NFDeployment) -> dict:
    """Return the desired AMF config map."""
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {
            "name": get_namespaced_name(nf_deployment, "amf-config"),
            "namespace": nf_deployment.namespace,
            "labels": _app_label(nf_deployment),
        },
        "data": {
            "amf-run.sh": generate_amf_run_script(),
            "amfcfg.yaml": generate_amf_config(nf_deployment),
        },
    }


def build_deployment(nf_deployment: NFDeployment) -> dict:
    """Return the desired AMF deployment."""
    name = get_namespaced_name(nf_deployment, "amf")
    container = {
        "name": AMF_CONTAINER_NAME,
        "image": AMF_IMAGE_NAME,
        "ports": [
            {"name": port_name, "containerPort": port, "protocol": protocol}
            for port_name, port, protocol in _PORTS
        ],
        "command": ["/opt/amf-run.sh"],
        "volumeMounts": [{"name": "amf-config", "mountPath": "/opt"}],
        "env": [
            {"name": "GRPC_GO_LOG_VERBOSITY_LEVEL", "value": "99"},
            {"name": "GRPC_GO_LOG_SEVERITY_LEVEL", "value": "info"},
            {"name": "GRPC_TRACE", "value": "all"},
            {"name": "GRPC_VERBOSITY", "value": "DEBUG"},
            {"name": "POD_IP", "valueFrom": {"fieldRef": {"fieldPath": "status.podIP"}}},
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
                            "name": "amf-config",
                            "configMap": {
                                "name": get_namespaced_name(nf_deployment, "amf-config"),
                                "defaultMode": 0o755,
                            },
                        }
                    ],
                },
            },
        },
    }


def build_services(nf_deployment: NFDeployment) -> tuple[dict, dict]:
    """Return the desired AMF service and its headless companion."""
    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": get_namespaced_name(nf_deployment, AMF_SERVICE_NAME),
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
    headless = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {
            "name": get_namespaced_name(nf_deployment, "amf-headless"),
            "namespace": nf_deployment.namespace,
            "labels": _app_label(nf_deployment),
        },
        "spec": {
            "clusterIP": "None",
            "selector": _app_label(nf_deployment),
            "ports": [{"name": "grpc", "port": 9000, "protocol": "TCP"}],
        },
    }
    return service, headless


def _get_existing(client: InMemoryClient, kind: str, key: ObjectKey) -> dict | None:
    try:
        return client.get(kind, key)
    except NotFoundError:
        return None


def reconcile_config_map(
    client: InMemoryClient, scheme: Scheme, nf_deployment: NFDeployment
) -> bool:
    """Create or update the AMF config map; return whether anything changed."""
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
    """Create or update the AMF deployment; return whether anything changed."""
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
    """Create or update the AMF service and headless service; return whether anything changed."""
    service, headless = build_services(nf_deployment)
    set_controller_reference(nf_deployment, service, scheme)
    set_controller_reference(nf_deployment, headless, scheme)
    changed = False

    name = service["metadata"]["name"]
    existing = _get_existing(client, "Service", ObjectKey(nf_deployment.namespace, name))
    if existing is None:
        _log.info("Creating Service %s", name)
        client.create(service)
        changed = True
    elif not service_equal(existing, service):
        _log.info("Updating Service %s", name)
        spec = service["spec"]
        spec["clusterIP"] = existing.get("spec", {}).get("clusterIP", "")
        existing["spec"] = spec
        client.update(existing)
        changed = True

    headless_name = headless["metadata"]["name"]
    existing = _get_existing(client, "Service", ObjectKey(nf_deployment.namespace, headless_name))
    if existing is None:
        _log.info("Creating Headless Service %s", headless_name)
        client.create(headless)
        changed = True
    elif not service_equal(existing, headless):
        _log.info("Updating Headless Service %s", headless_name)
        existing["spec"] = headless["spec"]
        client.update(existing)
        changed = True

    return changed