# nelm

Building blocks for planning and carrying out the deployment of a Kubernetes
release. A deployment is described as a directed acyclic graph of operations:
creating, updating, applying, recreating and deleting resources, tracking
their readiness, presence or absence, and moving the release record through
its pending, succeeded, failed and superseded states.

## Installation

```
pip install .
```

The tests use pytest, which the `test` extra installs:

```
pip install .[test]
pytest
```

## What is inside

- `nelm.log`: the `Logger` interface, `StandardLogger` (on top of the
  standard `logging` module, by default the `nelm` logger) and `NullLogger`,
  which discards everything. `get_default_logger()` returns the logger the
  package writes to; `set_default_logger(logger)` replaces it and returns the
  previous one.
- `nelm.operation`: the `Operation` base class with its `status`
  (`Status.UNKNOWN`, `COMPLETED`, `FAILED`), `OperationType`, `DeployType`,
  `OperationError`, and `StageOperation`, the empty marker operations that
  separate the stages of a plan.
- `nelm.release_operations`: `CreatePendingReleaseOperation`,
  `FailReleaseOperation`, `SucceedReleaseOperation` and
  `SupersedeReleaseOperation`. Each changes the state of a release object and
  saves it through a release history object (`create_release` or
  `update_release`).
- `nelm.resource_operations`: `CreateResourceOperation`,
  `RecreateResourceOperation`, `UpdateResourceOperation`,
  `ApplyResourceOperation` and `DeleteResourceOperation`, which act on cluster
  resources through a kube client. Each can be marked `extra_post`, which
  changes its type and id prefix (for example `extra-post-create/...`).
- `nelm.tracking_operations`: `TrackResourceReadinessOperation`,
  `TrackResourcePresenceOperation` and `TrackResourceAbsenceOperation`, which
  run a tracker you supply, and `ReadinessTrackOptions` for readiness
  tracking.
- `nelm.kube_client`: `KubeClient`, a client over a dynamic Kubernetes client
  with per-resource locking and a cache of the last result for each resource,
  plus `PropagationPolicy` and the errors `KubeClientError`, `NotFoundError`
  and `AlreadyExistsError`. Deletion uses foreground propagation unless told
  otherwise. Deleting or merge-patching a missing resource is not an error.
- `nelm.locker`: `LockerWithRetry`, which retries acquiring and releasing a
  lock, waiting a random 0 to 9 seconds between attempts and raising the last
  error when the attempts run out.
- `nelm.plan`: `Plan`, the operation graph. It handles staged operations,
  dependencies with cycle prevention, transitive reduction (`optimize`), DOT
  output (`dot`, `save_dot`), queries for completed, failed and canceled
  operations, and `useless()` to tell whether a plan would do any real work.
  Failures raise `PlanError`.
- `nelm.plan_builder`: `DeployFailurePlanBuilder`, which builds the cleanup
  plan run after a failed deployment, and
  `current_release_existing_resources_uids`.
- `nelm.dependency_detector`: `InternalDependencyDetector`, which reads a
  manifest (a dict) and returns `InternalDependency` records for the resources
  it refers to: config maps, secrets, service accounts, nodes, priority
  classes, runtime classes, resource claims, the service of a StatefulSet, and
  the role of a RoleBinding or ClusterRoleBinding.

## Example

```python
from nelm.operation import StageOperation
from nelm.plan import Plan

plan = Plan()
plan.add_staged_operation(
    StageOperation("stage/work"),
    "stage/initialization/start",
    "stage/initialization/end",
)
plan.optimize()
print(plan.dot().decode())
```

Operations in a plan are run with `execute()`. Afterwards the plan reports
which ones completed, failed or never ran.

## What this package does not do

- It does not connect to a cluster itself. `KubeClient` needs a dynamic client
  object and a REST mapper object from the caller, and the tracking operations
  need trackers from the caller.
- It does not store release history. Release and history objects are supplied
  by the caller.
- It builds only the failure cleanup plan. Plans for the deployment itself are
  assembled by the caller from `Plan` and the operations.
- It has no command-line interface.