import pytest

from sdcore_operator.kube import (
    InMemoryClient,
    NFDeployment,
    NotFoundError,
    ObjectKey,
    Request,
    Result,
    Scheme,
)
from sdcore_operator.smf.reconciler import SMFDeploymentReconciler, get_deployment


@pytest.fixture
def nf():
    return NFDeployment(name="test-smf", namespace="ns", provider="sdcore", generation=3)


@pytest.fixture
def client(nf):
    return InMemoryClient(objects=(nf,))


def request_for(nf):
    return Request(nf.key())


def test_first_pass_creates_resources_and_requeues(client, nf):
    result = SMFDeploymentReconciler(client).reconcile(request_for(nf))
    assert result == Result(requeue_after=10.0)
    assert client.get("ConfigMap", ObjectKey("ns", "test-smf-smf-config"))["kind"] == "ConfigMap"
    assert client.get("Service", ObjectKey("ns", "test-smf-smf-service"))["kind"] == "Service"
    assert get_deployment(client, nf)["metadata"]["name"] == "test-smf-smf"


def test_status_not_ready_then_ready(client, nf):
    reconciler = SMFDeploymentReconciler(client)
    reconciler.reconcile(request_for(nf))
    stored = client.get(NFDeployment.kind, nf.key())
    assert stored.status.observed_generation == 3
    assert [(c.status, c.reason) for c in stored.status.conditions] == [
        ("False", "DeploymentNotReady")
    ]

    deployment = get_deployment(client, nf)
    deployment["status"] = {"readyReplicas": 1}
    client.add(deployment)
    assert reconciler.reconcile(request_for(nf)) == Result()
    stored = client.get(NFDeployment.kind, nf.key())
    assert stored.status.conditions[0].status == "True"
    assert stored.status.conditions[0].message == "SMF deployment is ready"


def test_second_pass_is_steady(client, nf):
    reconciler = SMFDeploymentReconciler(client)
    reconciler.reconcile(request_for(nf))
    assert reconciler.reconcile(request_for(nf)) == Result()


def test_missing_nf_deployment_is_ignored(client):
    result = SMFDeploymentReconciler(client).reconcile(Request(ObjectKey("ns", "absent")))
    assert result == Result()


def test_non_sdcore_provider_is_ignored():
    other = NFDeployment(name="test-smf", namespace="ns", provider="free5gc.io")
    client = InMemoryClient(objects=(other,))
    assert SMFDeploymentReconciler(client).reconcile(request_for(other)) == Result()
    with pytest.raises(NotFoundError):
        client.get("ConfigMap", ObjectKey("ns", "test-smf-smf-config"))


def test_get_deployment_missing(client, nf):
    with pytest.raises(NotFoundError):
        get_deployment(client, nf)


def test_unregistered_owner_kind_raises(client, nf):
    with pytest.raises(KeyError):
        SMFDeploymentReconciler(client, Scheme()).reconcile(request_for(nf))