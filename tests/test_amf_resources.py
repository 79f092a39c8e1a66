import pytest

from sdcore_operator.amf import resources
from sdcore_operator.kube import InMemoryClient, Interface, NFDeployment, ObjectKey, Scheme


@pytest.fixture
def nf():
    return NFDeployment(
        name="test-amf",
        namespace="core",
        provider="sdcore",
        interfaces=[Interface("n2", "10.0.0.5/24")],
    )


@pytest.fixture
def client():
    return InMemoryClient()


def test_resource_list_valid():
    assert resources.resource_list("500m", "512Mi") == {"cpu": "500m", "memory": "512Mi"}


def test_resource_list_invalid():
    with pytest.raises(ValueError):
        resources.resource_list("lots", "512Mi")


def test_run_script():
    script = resources.generate_amf_run_script()
    assert script.startswith("#!/bin/bash\n")
    assert "./bin/amf -c /opt/amfcfg.yaml" in script


def test_config_uses_n2_address(nf):
    config = resources.generate_amf_config(nf)
    assert "    - 10.0.0.5\n" in config
    assert "registerIPv4: 10.0.0.5\n" in config
    assert "10.0.0.5/24" not in config


def test_config_default_address():
    nf = NFDeployment(name="x", interfaces=[Interface("n3", "10.1.1.1/24"), Interface("n2")])
    config = resources.generate_amf_config(nf)
    assert f"registerIPv4: {resources.DEFAULT_N2_ADDRESS}" in config


def test_config_first_n2_wins():
    nf = NFDeployment(name="x", interfaces=[Interface("n2", "10.2.2.2/24"), Interface("n2", "10.3.3.3/24")])
    config = resources.generate_amf_config(nf)
    assert "10.2.2.2" in config
    assert "10.3.3.3" not in config


def test_build_config_map(nf):
    cm = resources.build_config_map(nf)
    assert cm["metadata"]["name"] == "test-amf-amf-config"
    assert cm["metadata"]["labels"] == {"app": "test-amf-amf"}
    assert set(cm["data"]) == {"amf-run.sh", "amfcfg.yaml"}


def test_build_deployment(nf):
    dep = resources.build_deployment(nf)
    container = dep["spec"]["template"]["spec"]["containers"][0]
    assert container["image"] == resources.AMF_IMAGE_NAME
    assert [p["containerPort"] for p in container["ports"]] == [38412, 8080, 9000, 9089]
    assert container["ports"][0]["protocol"] == "SCTP"
    volume = dep["spec"]["template"]["spec"]["volumes"][0]
    assert volume["configMap"]["defaultMode"] == 0o755
    assert volume["configMap"]["name"] == "test-amf-amf-config"


def test_build_services(nf):
    service, headless = resources.build_services(nf)
    assert service["metadata"]["name"] == "test-amf-amf-service"
    assert all(p["port"] == p["targetPort"] for p in service["spec"]["ports"])
    assert headless["metadata"]["name"] == "test-amf-amf-headless"
    assert headless["spec"]["clusterIP"] == "None"


def test_equality_helpers(nf):
    a = resources.build_deployment(nf)
    b = resources.build_deployment(nf)
    assert resources.deployment_equal(a, b)
    b["spec"]["template"]["spec"]["containers"][0]["image"] = "other:1"
    assert not resources.deployment_equal(a, b)
    service, headless = resources.build_services(nf)
    assert not resources.service_equal(service, headless)
    assert resources.service_equal(service, resources.build_services(nf)[0])


def test_reconcile_config_map(client, nf):
    assert resources.reconcile_config_map(client, client.scheme, nf) is True
    assert resources.reconcile_config_map(client, client.scheme, nf) is False
    nf.interfaces = [Interface("n2", "10.9.9.9/24")]
    assert resources.reconcile_config_map(client, client.scheme, nf) is True
    stored = client.get("ConfigMap", ObjectKey("core", "test-amf-amf-config"))
    assert "10.9.9.9" in stored["data"]["amfcfg.yaml"]
    assert stored["metadata"]["ownerReferences"][0]["name"] == "test-amf"


def test_reconcile_deployment(client, nf):
    assert resources.reconcile_deployment(client, client.scheme, nf) is True
    assert resources.reconcile_deployment(client, client.scheme, nf) is False
    key = ObjectKey("core", "test-amf-amf")
    stored = client.get("Deployment", key)
    stored["spec"]["template"]["spec"]["containers"][0]["image"] = "other:1"
    client.add(stored)
    assert resources.reconcile_deployment(client, client.scheme, nf) is True
    restored = client.get("Deployment", key)
    assert restored["spec"]["template"]["spec"]["containers"][0]["image"] == resources.AMF_IMAGE_NAME


def test_reconcile_service_preserves_cluster_ip(client, nf):
    assert resources.reconcile_service(client, client.scheme, nf) is True
    assert resources.reconcile_service(client, client.scheme, nf) is False
    key = ObjectKey("core", "test-amf-amf-service")
    stored = client.get("Service", key)
    stored["spec"]["ports"] = stored["spec"]["ports"][:1]
    stored["spec"]["clusterIP"] = "10.96.0.10"
    client.add(stored)
    assert resources.reconcile_service(client, client.scheme, nf) is True
    updated = client.get("Service", key)
    assert len(updated["spec"]["ports"]) == 4
    assert updated["spec"]["clusterIP"] == "10.96.0.10"