"""test deployment

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

import pytest


def test_decode_deployments():
    from pykern import pkunit
    from pykern.pkcollections import PKDict
    from rsapigee import deployment

    d = deployment.decode_deployments(
        PKDict(
            deployments=[
                PKDict(environment="e1", apiProxy="p1", revision="3"),
                PKDict(environment="e2", apiProxy="p1", revision="4"),
                PKDict(environment="e1", revision="5"),
            ],
        ),
        name="p1",
    )
    pkunit.pkok(isinstance(d, deployment.Flat), "not flat d={}", d)
    pkunit.pkeq([3, 5], d.revisions_in("e1"))
    pkunit.pkeq(["p1"] * 3, [r.name for r in d.records])
    d = deployment.decode_deployments(
        PKDict(
            name="p1",
            environment=[
                PKDict(name="e1", revision=[PKDict(name="1"), PKDict(name="2")]),
                PKDict(name="e2", revision=[PKDict(name="2")]),
            ],
        ),
    )
    pkunit.pkok(isinstance(d, deployment.Classic), "not classic d={}", d)
    pkunit.pkeq([1, 2], d.revisions_in("e1"))
    pkunit.pkeq([2], d.revisions_in("e2"))
    pkunit.pkeq([], d.revisions_in("e3"))
    d = deployment.decode_deployments(
        PKDict(name="p1", environment="e1", revision=[PKDict(name="6")]),
    )
    pkunit.pkok(isinstance(d, deployment.Classic), "not classic d={}", d)
    pkunit.pkeq([6], d.revisions_in("e1"))
    for b in (PKDict(), PKDict(deployments=[]), PKDict(code="x"), [], "text"):
        d = deployment.decode_deployments(b)
        pkunit.pkok(isinstance(d, deployment.Unknown), "not unknown body={}", b)
        pkunit.pkeq([], d.revisions_in("e1"))


def test_decode_invalid_revisions():
    from pykern import pkunit
    from pykern.pkcollections import PKDict
    from rsapigee import deployment

    d = deployment.decode_deployments(
        PKDict(
            deployments=[
                PKDict(environment="e2", apiProxy="p1"),
                PKDict(environment="e2", apiProxy="p1", revision="x"),
                PKDict(environment="e1", revision="3"),
            ],
        ),
    )
    pkunit.pkok(isinstance(d, deployment.Flat), "not flat d={}", d)
    pkunit.pkeq([3], d.revisions_in("e1"))
    pkunit.pkeq([], d.revisions_in("e2"))
    d = deployment.decode_deployments(
        PKDict(
            environment=[
                PKDict(name="e1", revision=[PKDict(), PKDict(name="2"), "0"]),
                PKDict(name="e2", revision="not a list"),
            ],
        ),
    )
    pkunit.pkeq([2], d.revisions_in("e1"))
    pkunit.pkeq([], d.revisions_in("e2"))


def test_deploy_options():
    from pykern import pkunit
    from pykern.pkcollections import PKDict
    from rsapigee import deployment, mgmt, util

    c = mgmt.Connection("https://mgmt.example.com", "o1", default_delay=3)
    p = mgmt.AssetType.API_PROXY
    pkunit.pkeq(
        PKDict(override="true", delay=3),
        deployment.DeployOptions().form(c, p),
    )
    pkunit.pkeq(
        PKDict(override="false", delay=0, serviceAccount="sa@x", basepath="/b"),
        deployment.DeployOptions(
            override=False, delay=0, service_account="sa@x", basepath="/b"
        ).form(c, p),
    )
    pkunit.pkeq(
        PKDict(override="true"),
        deployment.DeployOptions(delay=5).form(
            mgmt.Connection("https://apigee.googleapis.com", "o1"), p
        ),
    )
    with pkunit.pkexcept(util.UnsupportedOption):
        deployment.DeployOptions(basepath="/b").form(c, mgmt.AssetType.SHARED_FLOW)


@pytest.mark.asyncio
async def test_deploy_latest():
    from rsapigee import deployment, mgmt_unit
    from pykern import pkunit
    from pykern.pkcollections import PKDict

    async with mgmt_unit.Setup(
        replies=PKDict(
            {
                "GET apis/p1/revisions": PKDict(body=["1", "3"]),
                "POST environments/test/apis/p1/revisions/3/deployments": PKDict(
                    body=PKDict(state="deployed"),
                ),
            }
        ),
    ) as s:
        pkunit.pkeq(
            "deployed",
            (await deployment.deploy(s.connection, "apiproxy", "p1", "test")).state,
        )
        pkunit.pkeq(
            [
                "GET apis/p1/revisions",
                "POST environments/test/apis/p1/revisions/3/deployments",
            ],
            s.call_keys(),
        )
        pkunit.pkeq(PKDict(override="true", delay="8"), s.calls[1].form)


@pytest.mark.asyncio
async def test_deploy_modern():
    from rsapigee import deployment, mgmt_unit
    from pykern import pkunit
    from pykern.pkcollections import PKDict

    async with mgmt_unit.Setup(
        replies=PKDict(
            {
                "POST environments/e1/sharedflows/sf1/revisions/2/deployments": PKDict(
                    body=PKDict(name="sf1"),
                ),
            }
        ),
        modern=True,
    ) as s:
        await deployment.deploy(
            s.connection,
            "sharedflowbundle",
            "sf1",
            PKDict(name="e1"),
            revision="2",
            options=deployment.DeployOptions(override=False),
        )
        pkunit.pkeq(PKDict(override="false"), s.calls[0].form)


@pytest.mark.asyncio
async def test_deploy_invalid():
    from rsapigee import deployment, mgmt_unit, util
    from pykern import pkunit

    async with mgmt_unit.Setup() as s:
        with pkunit.pkexcept(util.UnsupportedOption):
            await deployment.deploy(
                s.connection,
                "sharedflowbundle",
                "sf1",
                "test",
                options=deployment.DeployOptions(basepath="/x"),
            )
        with pkunit.pkexcept(util.InvalidArgument):
            await deployment.deploy(s.connection, "apiproxy", "p1", None)
        with pkunit.pkexcept(util.InvalidArgument):
            await deployment.deploy(s.connection, "apiproxy", "", "test")
        pkunit.pkeq([], s.calls)


@pytest.mark.asyncio
async def test_undeploy_all():
    from rsapigee import deployment, mgmt_unit, util
    from pykern import pkunit
    from pykern.pkcollections import PKDict

    r = _classic("test", 3, 5, 7)
    r["DELETE environments/test/apis/p1/revisions/5/deployments"] = PKDict(
        status=500, body=PKDict(message="busy")
    )
    async with mgmt_unit.Setup(replies=r) as s:
        rv = await deployment.undeploy(s.connection, "apiproxy", "p1", "test")
        pkunit.pkeq([3, 5, 7], [o.revision for o in rv])
        pkunit.pkeq(None, rv[0].error)
        pkunit.pkok(
            isinstance(rv[1].error, util.TransportError), "error={}", rv[1].error
        )
        pkunit.pkeq(500, rv[1].error.status)
        pkunit.pkeq(None, rv[2].error)
        pkunit.pkeq(
            ["GET apis/p1/deployments"]
            + [
                f"DELETE environments/test/apis/p1/revisions/{x}/deployments"
                for x in (3, 5, 7)
            ],
            s.call_keys(),
        )


@pytest.mark.asyncio
async def test_undeploy_none():
    from rsapigee import deployment, mgmt_unit
    from pykern import pkunit
    from pykern.pkcollections import PKDict

    async with mgmt_unit.Setup(
        replies=PKDict(
            {
                "GET apis/p1/deployments": PKDict(
                    status=400, body=PKDict(code="distribution.ApplicationNotDeployed")
                ),
            }
        ),
    ) as s:
        pkunit.pkeq(
            [], await deployment.undeploy(s.connection, "apiproxy", "p1", "test")
        )
        pkunit.pkeq(["GET apis/p1/deployments"], s.call_keys())


@pytest.mark.asyncio
async def test_undeploy_one():
    from rsapigee import deployment, mgmt_unit
    from pykern import pkunit
    from pykern.pkcollections import PKDict

    k = "DELETE environments/prod/sharedflows/sf1/revisions/4/deployments"
    async with mgmt_unit.Setup(
        replies=PKDict({k: PKDict(body=PKDict(state="undeployed"))}),
    ) as s:
        pkunit.pkeq(
            "undeployed",
            (
                await deployment.undeploy(
                    s.connection, "sharedflow", "sf1", "prod", revision=4
                )
            ).state,
        )
        pkunit.pkeq([k], s.call_keys())


@pytest.mark.asyncio
async def test_undeploy_deadline():
    from rsapigee import deployment, mgmt_unit, util
    from pykern import pkunit
    import time

    async with mgmt_unit.Setup(replies=_classic("test", 1, 2)) as s:
        rv = await deployment.undeploy(
            s.connection, "apiproxy", "p1", "test", deadline=time.monotonic() - 1
        )
        pkunit.pkeq([1, 2], [o.revision for o in rv])
        for o in rv:
            pkunit.pkok(
                isinstance(o.error, util.DeadlineExceeded), "error={}", o.error
            )
        pkunit.pkeq(["GET apis/p1/deployments"], s.call_keys())


@pytest.mark.asyncio
async def test_deployed_revisions_flat():
    from rsapigee import deployment, mgmt_unit
    from pykern import pkunit
    from pykern.pkcollections import PKDict

    async with mgmt_unit.Setup(
        replies=PKDict(
            {
                "GET apis/p1/deployments": PKDict(
                    body=PKDict(
                        deployments=[
                            PKDict(environment="e1", apiProxy="p1", revision="4"),
                            PKDict(environment="e1", apiProxy="p1", revision="2"),
                            PKDict(environment="e1", apiProxy="p1", revision="4"),
                            PKDict(environment="e2", apiProxy="p1", revision="1"),
                        ],
                    ),
                ),
            }
        ),
        modern=True,
    ) as s:
        pkunit.pkeq(
            [4, 2],
            await deployment.deployed_revisions(s.connection, "apiproxy", "p1", "e1"),
        )


def _classic(environment, *revisions):
    from pykern.pkcollections import PKDict

    p = f"DELETE environments/{environment}/apis/p1/revisions"
    rv = PKDict(
        {
            f"{p}/{r}/deployments": PKDict(body=PKDict(state="undeployed"))
            for r in revisions
        }
    )
    return rv.pkupdate(
        {
            "GET apis/p1/deployments": PKDict(
                body=PKDict(
                    name="p1",
                    environment=[
                        PKDict(
                            name=environment,
                            revision=[PKDict(name=str(r)) for r in revisions],
                        ),
                    ],
                ),
            ),
        }
    )
