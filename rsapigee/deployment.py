"""Discover deployments and drive deploy/undeploy

The management server answers deployment queries in two shapes, which
`decode_deployments` turns into one of `Flat`, `Classic`, or
`Unknown`. Each answers `revisions_in` for an environment.

Modern (flat)::

    {"deployments": [{"environment": "e1", "apiProxy": "p1", "revision": "3"}]}

Classic, several environments::

    {"name": "p1", "environment": [{"name": "e1", "revision": [{"name": "3"}]}]}

Classic, a single environment::

    {"name": "p1", "environment": "e1", "revision": [{"name": "3"}]}

Undeploying every revision in an environment issues one DELETE at a
time via `rsapigee.sequential.outcomes`.

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

from pykern.pkcollections import PKDict
from pykern.pkdebug import pkdc, pkdlog, pkdp
import enum
import rsapigee.mgmt
import rsapigee.revision
import rsapigee.sequential
import rsapigee.util


class AttemptState(enum.Enum):
    PENDING = "pending"
    REQUESTED = "requested"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class DeployOptions:
    """Parameters of a deploy request

    Args:
        override (bool): supersede existing deployments [True]
        delay (int): seconds to drain before swap; legacy surface only [conn.default_delay]
        service_account (str): identity of the deployed proxy [None]
        basepath (str): proxies only [None]
    """

    def __init__(self, override=True, delay=None, service_account=None, basepath=None):
        self.override = bool(override)
        self.delay = None if delay is None else int(delay)
        self.service_account = service_account
        self.basepath = basepath

    def form(self, conn, asset_type):
        """Body of the deploy request

        Args:
            conn (mgmt.Connection): decides whether delay is sent
            asset_type (mgmt.AssetType): basepath is only valid for proxies
        Returns:
            PKDict: form fields
        """
        rv = PKDict(override="true" if self.override else "false")
        if not conn.is_modern():
            rv.delay = conn.default_delay if self.delay is None else self.delay
        if self.service_account:
            rv.serviceAccount = self.service_account
        if self.basepath:
            if not asset_type.is_proxy():
                raise rsapigee.util.UnsupportedOption(
                    "basepath is not supported for asset_type={}", asset_type.name
                )
            rv.basepath = self.basepath
        return rv

    def __repr__(self):
        return f"<{self.__class__.__name__} override={self.override} delay={self.delay}>"


class Classic:
    """Nested environment/revision tree

    Args:
        environments (list): PKDict(name, revisions)
    """

    def __init__(self, environments):
        self.environments = environments

    def revisions_in(self, environment):
        for e in self.environments:
            if e.name == environment:
                return e.revisions
        return []


class Flat:
    """Modern list of deployment records

    Args:
        records (list): PKDict(name, environment, revision)
    """

    def __init__(self, records):
        self.records = records

    def revisions_in(self, environment):
        return [r.revision for r in self.records if r.environment == environment]


class Unknown:
    """Shape not recognized or nothing deployed"""

    def revisions_in(self, environment):
        return []


def decode_deployments(body, name=None):
    """Detect the shape of a deployments response

    Records and revisions without a valid revision are skipped.

    Args:
        body (object): parsed response
        name (str): asset name used when a record does not carry one [None]
    Returns:
        Flat|Classic|Unknown: decoded deployments
    """

    def _classic_env(node):
        return PKDict(name=node.get("name"), revisions=_revisions(node.get("revision")))

    def _flat(records):
        rv = []
        for x in records:
            r = _revision(x.get("revision"))
            if r is not None:
                rv.append(
                    PKDict(
                        name=x.get("apiProxy") or name,
                        environment=x.get("environment"),
                        revision=r,
                    ),
                )
        return rv

    def _revision(value):
        try:
            return rsapigee.revision.revision_value(value)
        except rsapigee.util.InvalidArgument:
            pkdc("skipping revision={} name={}", value, name)
            return None

    def _revisions(revisions):
        if not isinstance(revisions, list):
            return []
        return [r for r in map(_revision, revisions) if r is not None]

    if not isinstance(body, dict):
        return Unknown()
    d = body.get("deployments")
    if (
        isinstance(d, list)
        and d
        and all(isinstance(x, dict) and "environment" in x for x in d)
    ):
        return Flat(_flat(d))
    e = body.get("environment")
    if isinstance(e, str) and isinstance(body.get("revision"), list):
        return Classic([PKDict(name=e, revisions=_revisions(body.get("revision")))])
    if isinstance(e, list) and e:
        return Classic([_classic_env(x) for x in e if isinstance(x, dict)])
    return Unknown()


async def deploy(conn, asset_type, name, environment, revision=None, options=None):
    """Deploy a revision (latest if not supplied) to an environment

    The acknowledgement does not mean traffic has switched over.

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
        environment (object): name or dict with ``name``
        revision (object): see `revision.revision_value` [latest]
        options (DeployOptions): [DeployOptions()]
    Returns:
        PKDict: server's deployment acknowledgement
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    n = rsapigee.util.require_name(name)
    e = rsapigee.util.environment_name(environment)
    f = (options or DeployOptions()).form(conn, t)
    r = await rsapigee.revision.resolve_revision_or_latest(conn, t, n, revision)
    return await _Attempt("deploy", t, n, r, e).run(
        conn.call(
            "POST",
            "environments",
            e,
            t.collection,
            n,
            "revisions",
            r,
            "deployments",
            form=f,
        ),
    )


async def deployed_revisions(conn, asset_type, name, environment):
    """Revisions of the asset deployed in environment

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
        environment (object): name or dict with ``name``
    Returns:
        list: int revisions in server order, possibly empty
    """
    e = rsapigee.util.environment_name(environment)
    rv = []
    for r in decode_deployments(
        await deployments(conn, asset_type, name),
        name=name,
    ).revisions_in(e):
        if r not in rv:
            rv.append(r)
    pkdc("name={} environment={} revisions={}", name, e, rv)
    return rv


async def deployments(conn, asset_type, name=None, environment=None, revision=None):
    """Raw deployments listing

    Without a name, lists all proxy deployments (organization or
    environment). A 400 is returned as the body, not raised, because
    the classic surface answers 400 for assets that are not deployed.

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name [None]
        environment (object): restrict to environment [None]
        revision (object): restrict to revision; requires name [None]
    Returns:
        object: parsed response
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    p = []
    if environment is not None:
        p.extend(("environments", rsapigee.util.environment_name(environment)))
    if name:
        p.extend((t.collection, name))
        if revision is not None:
            p.extend(("revisions", rsapigee.revision.revision_value(revision)))
    elif revision is not None:
        raise rsapigee.util.InvalidArgument(
            "name is required with revision={}", revision
        )
    return await conn.call("GET", *p, "deployments", accepted=(200, 400))


async def undeploy(conn, asset_type, name, environment, revision=None, deadline=None):
    """Undeploy one revision or every revision deployed in environment

    With ``revision``, issues one DELETE and returns its result (or
    raises). Without, returns one PKDict(revision, error) per deployed
    revision, in order; ``error`` is None on success. No deployments
    returns an empty list.

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
        environment (object): name or dict with ``name``
        revision (object): see `revision.revision_value` [all deployed]
        deadline (float): `time.monotonic` after which no more DELETEs are issued [None]
    Returns:
        PKDict or list: server response or outcomes
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    n = rsapigee.util.require_name(name)
    e = rsapigee.util.environment_name(environment)

    async def _one(revision):
        return await _Attempt("undeploy", t, n, revision, e).run(
            conn.call(
                "DELETE",
                "environments",
                e,
                t.collection,
                n,
                "revisions",
                revision,
                "deployments",
            ),
        )

    if revision is not None:
        return await _one(rsapigee.revision.revision_value(revision))
    d = await deployed_revisions(conn, t, n, e)
    if not d:
        pkdlog("nothing deployed asset_type={} name={} environment={}", t.name, n, e)
        return []
    return [
        PKDict(revision=o.item, error=o.error)
        for o in await rsapigee.sequential.outcomes(d, _one, deadline=deadline)
    ]


class _Attempt:
    def __init__(self, op, asset_type, name, revision, environment):
        self.op = op
        self.asset_type = asset_type
        self.name = name
        self.revision = revision
        self.environment = environment
        self.state = AttemptState.PENDING

    async def run(self, coro):
        self._transition(AttemptState.REQUESTED)
        try:
            rv = await coro
        except Exception as e:
            self._transition(AttemptState.FAILED, error=e)
            raise
        self._transition(AttemptState.SUCCEEDED)
        return rv

    def _transition(self, state, error=None):
        self.state = state
        if state is AttemptState.REQUESTED:
            pkdlog("{}", self)
        elif state is AttemptState.FAILED:
            pkdlog("{} error={}", self, error)
        else:
            pkdc("{}", self)

    def __repr__(self):
        return "<{} {} {} r{} env={} {}>".format(
            self.op,
            self.asset_type.name,
            self.name,
            self.revision,
            self.environment,
            self.state.value,
        )
