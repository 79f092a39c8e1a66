"""Kubernetes resources for UPF deployments and their reconciliation."""

from __future__ import annotations

import copy
import json
import logging

from ..amf.resources import resource_list
from ..common import get_namespaced_name
from ..kube import (
    InMemoryClient,
    NFDeployment,
    ObjectKey,
    Scheme,
    create_or_update,
    set_controller_reference,
)

_log = logging.getLogger(__name__)

UPF_BESS_IMAGE_NAME = "omecproject/upf-epc-bess:rel-2.0.1"
UPF_PFCPIFACE_IMAGE_NAME = "omecproject/upf-epc-pfcpiface:rel-2.0.1"
UPF_TOOLS_IMAGE_NAME = "omecproject/pod-init:rel-1.1.2"
UPF_CONTAINER_NAME = "upf"
UPF_CONFIG_NAME = "upf-config"
UPF_SERVICE_NAME = "upf-service"
BESSD_CONTAINER_NAME = "bessd"
ROUTECTL_CONTAINER_NAME = "routectl"
WEB_CONTAINER_NAME = "web"
PFCP_AGENT_CONTAINER_NAME = "pfcp-agent"

_BESS_INIT_SCRIPT = "\n\t\t\t\t".join(
    [
        'echo "Skipping network setup for local testing";',
        'echo "In a real environment, we would run:";',
        'echo "ip route replace 192.168.251.0/24 via 192.168.252.1";',
        'echo "ip route replace default via 192.168.250.1 metric 110";',
        'echo "iptables -I OUTPUT -p icmp --icmp-type port-unreachable -j DROP";',
    ]
)

# Settings for local testing that do not rely on particular network interfaces.
_UPF_SETTINGS = {
    "mode": "af_packet",
    "log_level": "info",
    "workers": 1,
    "max_sessions": 50000,
    "table_sizes": {
        "pdrLookup": 50000,
        "appQERLookup": 200000,
        "sessionQERLookup": 100000,
        "farLookup": 150000,
    },
    "access": {"ifname": "eth0"},
    "core": {"ifname": "eth0"},
    "measure_upf": True,
    "measure_flow": False,
    "enable_notify_bess": True,
    "notify_sockaddr": "/pod-share/notifycp",
    "cpiface": {"dnn": "internet", "hostname": "", "http_port": "8080"},
    "slice_rate_limit_config": {
        "n6_bps": 1000000000,
        "n6_burst_bytes": 12500000,
        "n3_bps": 1000000000,
        "n3_burst_bytes": 12500000,
    },
    "qci_qos_config": [
        {
            "qci": 0,
            "cbs": 50000,
            "ebs": 50000,
            "pbs": 50000,
            "burst_duration_ms": 10,
            "priority": 7,
        }
    ],
}

_POST_START_SCRIPT = """#!/bin/bash
set -x

echo "Waiting for BESS to start..."
sleep 5

echo "Running BESS configuration..."
bessctl run /opt/bess/bessctl/conf/up4.bess -- $CONF_FILE || {
  echo "Error running BESS configuration, but continuing anyway for testing purposes"
  exit 0
}
"""


def _resources(cpu: str, memory: str) -> dict:
    return {"requests": resource_list(cpu, memory), "limits": resource_list(cpu, memory)}


def configure_deployment_spec(deployment: dict, nf_deployment: NFDeployment) -> None:
    """Fill in the UPF deployment's spec in place."""
    spec = deployment.setdefault("spec", {})
    spec["replicas"] = 1

    labels = {"app": get_namespaced_name(nf_deployment, "upf")}
    spec["selector"] = {"matchLabels": labels}
    template = spec.setdefault("template", {})
    template.setdefault("metadata", {})["labels"] = labels

    config_map_name = get_namespaced_name(nf_deployment, UPF_CONFIG_NAME)
    pod_spec = template.setdefault("spec", {})
    pod_spec["shareProcessNamespace"] = True

    pod_spec["initContainers"] = [
        {
            "name": "bess-init",
            "image": UPF_BESS_IMAGE_NAME,
            "command": ["sh", "-xec"],
            "args": [_BESS_INIT_SCRIPT],
            "securityContext": {"capabilities": {"add": ["NET_ADMIN"]}},
            "resources": _resources("128m", "64Mi"),
        }
    ]

    pod_spec["containers"] = [
        {
            "name": BESSD_CONTAINER_NAME,
            "image": UPF_BESS_IMAGE_NAME,
            "securityContext": {"capabilities": {"add": ["IPC_LOCK", "CAP_SYS_NICE"]}},
            "command": ["/bin/bash", "-xc"],
            "args": ["bessd -m 0 -f --grpc_url=0.0.0.0:10514"],
            "stdin": True,
            "tty": True,
            "lifecycle": {
                "postStart": {"exec": {"command": ["/etc/bess/conf/bessd-poststart.sh"]}}
            },
            "resources": _resources("2", "2Gi"),
            "env": [{"name": "CONF_FILE", "value": "/etc/bess/conf/upf.jsonc"}],
            "volumeMounts": [
                {"name": "shared-app", "mountPath": "/pod-share"},
                {"name": "config-volume", "mountPath": "/etc/bess/conf"},
            ],
            "livenessProbe": {
                "tcpSocket": {"port": 10514},
                "initialDelaySeconds": 15,
                "periodSeconds": 20,
            },
        },
        {
            "name": ROUTECTL_CONTAINER_NAME,
            "image": UPF_BESS_IMAGE_NAME,
            "env": [{"name": "PYTHONUNBUFFERED", "value": "1"}],
            "command": ["/opt/bess/bessctl/conf/route_control.py"],
            "args": ["-i", "eth0", "eth0"],
            "resources": _resources("256m", "128Mi"),
        },
        {
            "name": WEB_CONTAINER_NAME,
            "image": UPF_BESS_IMAGE_NAME,
            "command": ["/bin/bash", "-xc", "bessctl http 0.0.0.0 8000"],
            "resources": _resources("256m", "128Mi"),
        },
        {
            "name": PFCP_AGENT_CONTAINER_NAME,
            "image": UPF_PFCPIFACE_IMAGE_NAME,
            "command": ["pfcpiface"],
            "args": ["-config", "/tmp/conf/upf.jsonc"],
            "resources": _resources("256m", "128Mi"),
            "volumeMounts": [
                {"name": "shared-app", "mountPath": "/pod-share"},
                {"name": "config-volume", "mountPath": "/tmp/conf"},
            ],
        },
    ]

    pod_spec["volumes"] = [
        {
            "name": "config-volume",
            "configMap": {"name": config_map_name, "defaultMode": 0o755},
        },
        {"name": "shared-app", "emptyDir": {}},
    ]


def generate_upf_config(nf_deployment: NFDeployment) -> str:
    """Return the UPF configuration file (JSON) for an NF deployment."""
    settings = copy.deepcopy(_UPF_SETTINGS)
    return json.dumps(settings, indent=2)


def generate_bess_post_start_script() -> str:
    """Return the script run after the BESS container starts."""
    return _POST_START_SCRIPT


def reconcile_config_map(
    client: InMemoryClient, scheme: Scheme, nf_deployment: NFDeployment
) -> str:
    """Create or update the UPF config map; return the operation performed."""
    key = ObjectKey(nf_deployment.namespace, get_namespaced_name(nf_deployment, UPF_CONFIG_NAME))

    def mutate(config_map: dict) -> None:
        set_controller_reference(nf_deployment, config_map, scheme)
        config_map["data"] = {
            "upf.jsonc": generate_upf_config(nf_deployment),
            "bessd-poststart.sh": generate_bess_post_start_script(),
        }

    operation, _ = create_or_update(client, "ConfigMap", key, mutate)
    _log.info("ConfigMap reconciled (operation %s)", operation)
    return operation


def reconcile_deployment(
    client: InMemoryClient, scheme: Scheme, nf_deployment: NFDeployment
) -> str:
    """Create or update the UPF deployment; return the operation performed."""
    key = ObjectKey(nf_deployment.namespace, get_namespaced_name(nf_deployment, "upf"))

    def mutate(deployment: dict) -> None:
        set_controller_reference(nf_deployment, deployment, scheme)
        configure_deployment_spec(deployment, nf_deployment)

    operation, _ = create_or_update(client, "Deployment", key, mutate)
    _log.info("Deployment reconciled (operation %s)", operation)
    return operation


def reconcile_service(client: InMemoryClient, scheme: Scheme, nf_deployment: NFDeployment) -> str:
    """Create or update the UPF service; return the operation performed."""
    key = ObjectKey(nf_deployment.namespace, get_namespaced_name(nf_deployment, UPF_SERVICE_NAME))

    def mutate(service: dict) -> None:
        set_controller_reference(nf_deployment, service, scheme)
        spec = service.setdefault("spec", {})
        spec["selector"] = {"app": get_namespaced_name(nf_deployment, "upf")}
        spec["ports"] = [
            {"name": "pfcp", "protocol": "UDP", "port": 8805, "targetPort": 8805},
            {"name": "bess-web", "protocol": "TCP", "port": 8000, "targetPort": 8000},
            {"name": "prometheus", "protocol": "TCP", "port": 8080, "targetPort": 8080},
        ]

    operation, _ = create_or_update(client, "Service", key, mutate)
    _log.info("Service reconciled (operation %s)", operation)
    return operation