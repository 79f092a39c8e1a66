import pytest

from sdcore_operator.common import get_namespaced_name
from sdcore_operator.kube import InMemoryClient, NFDeployment, NotFoundError
from sdcore_operator.smf.status import update_status


def _setup(status):
    nf = NFDeployment(name="test-smf", provider="sdcore", generation=5)
    deployment = {
        "kind": "Deployment",
        "metadata": {"name": get_namespaced_name(nf, "smf"), "namespace": nf.namespace},
        "status": status,
    }
    return nf, InMemoryClient(objects=(nf, deployment))


def test_ready():
    nf, client = _setup({"readyReplicas": 2})
    update_status(client, nf)
    stored = client.get("NFDeployment", nf.key())
    assert stored.status.observed_generation == 5
    cond = stored.status.conditions[0]
    assert (cond.type, cond.status, cond.reason) == ("Ready", "True", "DeploymentReady")
    assert cond.message == "SMF deployment is ready"


def test_no_status_is_not_ready():
    nf, client = _setup({})
    update_status(client, nf)
    conditions = client.get("NFDeployment", nf.key()).status.conditions
    assert len(conditions) == 1
    assert (conditions[0].status, conditions[0].reason) == ("False", "DeploymentNotReady")
    assert conditions[0].message == "SMF deployment is not ready"


def test_replaces_previous_conditions():
    nf, client = _setup({"readyReplicas": 0})
    update_status(client, nf)
    update_status(client, nf)
    assert len(client.get("NFDeployment", nf.key()).status.conditions) == 1


def test_missing_deployment():
    nf = NFDeployment(name="test-smf")
    with pytest.raises(NotFoundError):
        update_status(InMemoryClient(objects=(nf,)), nf)