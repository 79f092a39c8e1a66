import json

import pytest

from sdcore_operator.kube import InMemoryClient, NFDeployment, ObjectKey, Scheme
from sdcore_operator.upf.resources import (
    configure_deployment_spec,
    generate_bess_post_start_script,
    generate_upf_config,
    reconcile_config_map,
    reconcile_deployment,
    reconcile_service,
)


@pytest.fixture
def nf():
    return NFDeployment(name="test-upf", namespace="ns", provider="upf.sdcore.io")


@pytest.fixture
def client(nf):
    return InMemoryClient(objects=(nf,))


def test_generate_upf_config_is_json(nf):
    config = json.loads(generate_upf_config(nf))
    assert config["mode"] == "af_packet"
    assert config["max_sessions"] == 50000
    assert config["notify_sockaddr"] == "/pod-share/notifycp"
    assert config["access"]["ifname"] == "eth0"


def test_post_start_script():
    script = generate_bess_post_start_script()
    assert script.startswith("#!/bin/bash\n")
    assert "bessctl run /opt/bess/bessctl/conf/up4.bess -- $CONF_FILE" in script


def test_configure_deployment_spec(nf):
    deployment = {"metadata": {"name": "test-upf-upf", "namespace": "ns"}}
    configure_deployment_spec(deployment, nf)
    spec = deployment["spec"]
    assert spec["replicas"] == 1
    assert spec["selector"]["matchLabels"] == {"app": "test-upf-upf"}
    assert spec["template"]["metadata"]["labels"] == {"app": "test-upf-upf"}
    pod = spec["template"]["spec"]
    assert pod["shareProcessNamespace"] is True
    assert [c["name"] for c in pod["initContainers"]] == ["bess-init"]
    assert [c["name"] for c in pod["containers"]] == ["bessd", "routectl", "web", "pfcp-agent"]
    assert pod["containers"][3]["image"] == "omecproject/upf-epc-pfcpiface:rel-2.0.1"
    volumes = {v["name"]: v for v in pod["volumes"]}
    assert volumes["config-volume"]["configMap"] == {"name": "test-upf-upf-config", "defaultMode": 493}
    assert volumes["shared-app"]["emptyDir"] == {}


def test_bessd_container_details(nf):
    deployment = {"metadata": {"name": "test-upf-upf", "namespace": "ns"}}
    configure_deployment_spec(deployment, nf)
    bessd = deployment["spec"]["template"]["spec"]["containers"][0]
    assert bessd["args"] == ["bessd -m 0 -f --grpc_url=0.0.0.0:10514"]
    assert bessd["livenessProbe"]["tcpSocket"]["port"] == 10514
    assert bessd["securityContext"]["capabilities"]["add"] == ["IPC_LOCK", "CAP_SYS_NICE"]
    assert bessd["resources"]["limits"] == {"cpu": "2", "memory": "2Gi"}


def test_reconcile_config_map_create_then_unchanged(client, nf):
    assert reconcile_config_map(client, client.scheme, nf) == "created"
    stored = client.get("ConfigMap", ObjectKey("ns", "test-upf-upf-config"))
    assert set(stored["data"]) == {"upf.jsonc", "bessd-poststart.sh"}
    assert stored["metadata"]["ownerReferences"][0]["name"] == "test-upf"
    assert reconcile_config_map(client, client.scheme, nf) == "unchanged"


def test_reconcile_config_map_updates_stale_data(client, nf):
    client.add(
        {
            "kind": "ConfigMap",
            "metadata": {"name": "test-upf-upf-config", "namespace": "ns"},
            "data": {"upf.jsonc": "{}"},
        }
    )
    assert reconcile_config_map(client, client.scheme, nf) == "updated"
    stored = client.get("ConfigMap", ObjectKey("ns", "test-upf-upf-config"))
    assert stored["data"]["upf.jsonc"] == generate_upf_config(nf)


def test_reconcile_deployment_idempotent(client, nf):
    assert reconcile_deployment(client, client.scheme, nf) == "created"
    assert reconcile_deployment(client, client.scheme, nf) == "unchanged"
    stored = client.get("Deployment", ObjectKey("ns", "test-upf-upf"))
    assert stored["spec"]["replicas"] == 1


def test_reconcile_service_keeps_cluster_ip(client, nf):
    client.add(
        {
            "kind": "Service",
            "metadata": {"name": "test-upf-upf-service", "namespace": "ns"},
            "spec": {"clusterIP": "10.0.0.1"},
        }
    )
    assert reconcile_service(client, client.scheme, nf) == "updated"
    stored = client.get("Service", ObjectKey("ns", "test-upf-upf-service"))
    assert stored["spec"]["clusterIP"] == "10.0.0.1"
    assert [p["port"] for p in stored["spec"]["ports"]] == [8805, 8000, 8080]
    assert stored["spec"]["selector"] == {"app": "test-upf-upf"}


def test_reconcile_requires_registered_owner_kind(client, nf):
    with pytest.raises(KeyError):
        reconcile_service(client, Scheme(), nf)