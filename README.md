# sdcore-operator

`sdcore_operator` holds the reconciliation logic for `NFDeployment` resources
that target SD-Core network functions. The package routes each `NFDeployment`
by its provider and name. The matching reconciler then brings the ConfigMaps,
Deployments and Services of the network function into line with the spec and
records the outcome in the resource's status conditions.

## What it manages

| Network function | Routed when                                      | Resources                                                        |
|------------------|--------------------------------------------------|------------------------------------------------------------------|
| UPF              | provider is `upf.sdcore.io` (any case)           | ConfigMap (`upf.jsonc`, `bessd-poststart.sh`), Deployment, Service |
| SMF              | provider is `sdcore` or ends in `.sdcore.io`, name is `test-smf` | ConfigMap (`smf-run.sh`, `smfcfg.yaml`, `uerouting.yaml`), Deployment, Service |
| AMF              | provider is `sdcore` or ends in `.sdcore.io`, name is `test-amf` | ConfigMap (`amf-run.sh`, `amfcfg.yaml`), Deployment, Service and headless Service |

Any other `NFDeployment` is logged and left alone.

Resource names are built from the `NFDeployment` name and a suffix, for
example `<name>-upf`, `<name>-smf-config` or `<name>-amf-headless`. The
resources carry a controller owner reference to the `NFDeployment`.

The SMF and AMF configuration files take their address from the `n4` and
`n2` interfaces. The interface's `ipv4` value is an address in CIDR form,
and its last three characters (a `/NN` prefix length) are dropped. Without
such an interface the defaults are `192.168.250.4` for the SMF and
`192.168.251.5` for the AMF.

## Package layout

- `sdcore_operator.kube`: the object model (`NFDeployment`, `Interface`,
  `NFDeploymentStatus`, `Condition`, `Request`, `Result`, `ObjectKey`),
  `Scheme` and `new_scheme()`, the `InMemoryClient` that holds the objects,
  `NotFoundError`, and the helpers `set_controller_reference` and
  `create_or_update`. `create_or_update` returns `"created"`, `"updated"` or
  `"unchanged"` together with the object.
- `sdcore_operator.common`: `get_namespaced_name`, `is_provider_sdcore` and
  `is_provider_sdcore_upf`.
- `sdcore_operator.reconciler`: `NFDeploymentReconciler`, which passes each
  request on to the reconciler for its network function.
- `sdcore_operator.upf`, `sdcore_operator.smf`, `sdcore_operator.amf`: one
  sub-package per network function. Each has a `reconciler` module, a
  `resources` module that builds and reconciles the resources, and a
  `status` module for the status conditions.

## Provider checks

```python
from sdcore_operator.common import is_provider_sdcore, is_provider_sdcore_upf

is_provider_sdcore_upf("UPF.SDCORE.IO")   # True, the check ignores case
is_provider_sdcore("smf.sdcore.io")       # True
is_provider_sdcore("free5gc.io")          # False
```

## Reconciling

```python
from sdcore_operator.kube import InMemoryClient, Interface, NFDeployment, ObjectKey, Request
from sdcore_operator.reconciler import NFDeploymentReconciler

nf = NFDeployment(
    name="test-amf",
    provider="sdcore",
    interfaces=[Interface("n2", "10.0.0.5/24")],
)
client = InMemoryClient(objects=(nf,))
result = NFDeploymentReconciler(client).reconcile(Request(nf.key()))

result.requeue_after                                   # 10.0, resources were created
client.get("Deployment", ObjectKey("default", "test-amf-amf"))["spec"]["replicas"]   # 1
client.get("NFDeployment", nf.key()).status.conditions[0].status                     # "False"
```

A reconciler uses the client's scheme (by default one from `new_scheme()`)
unless it is given another one. `reconcile()` returns a `Result`. Its
`requeue_after` is in seconds, and `0.0` means no requeue.

- A missing `NFDeployment` is ignored and gives `Result()`.
- The SMF and AMF reconcilers ask for a requeue after 10 seconds when any of
  their resources was created or updated. On every pass they set a single
  `Ready` condition, which is true once their Deployment has a ready
  replica, and they record the `NFDeployment` generation as the observed
  generation.
- The UPF reconciler uses `create_or_update` for its resources. It sets
  `Available` and `Ready` conditions from the state of its Deployment and
  takes the observed generation from the Deployment. It writes the status
  back only when one of these has changed. If the Deployment cannot be
  found after reconciling, it asks for a requeue after 10 seconds.
- Errors are raised as exceptions. Reading an object that does not exist
  raises `NotFoundError`.

## What it does not do

The package does not talk to a Kubernetes API server. All objects live in
the `InMemoryClient`. There is no command to start, no controller manager,
no watch or event loop, no metrics or health-probe endpoints, and no leader
election. `reconcile()` has to be called for each request.