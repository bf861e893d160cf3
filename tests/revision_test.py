"""test revision

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

import pytest


def test_revision_value():
    from pykern import pkunit
    from pykern.pkcollections import PKDict
    from rsapigee import revision, util

    for v in (3, "3", PKDict(name="3"), {"name": 3}):
        pkunit.pkeq(3, revision.revision_value(v))
    for v in (0, "-1", "x", None, True, PKDict(), 1.5j):
        with pkunit.pkexcept(util.InvalidArgument):
            revision.revision_value(v)


@pytest.mark.asyncio
async def test_latest():
    from rsapigee import mgmt_unit, revision
    from pykern import pkunit
    from pykern.pkcollections import PKDict

    async with mgmt_unit.Setup(
        replies=PKDict({"GET apis/p1/revisions": PKDict(body=["2", "10", "9"])}),
    ) as s:
        pkunit.pkeq(
            [2, 9, 10], await revision.revisions(s.connection, "apiproxy", "p1")
        )
        pkunit.pkeq(
            10, await revision.latest_revision(s.connection, "apiproxy", "p1")
        )
        pkunit.pkeq(
            10,
            await revision.resolve_revision_or_latest(s.connection, "proxy", "p1"),
        )
        pkunit.pkeq(["GET apis/p1/revisions"] * 3, s.call_keys())


@pytest.mark.asyncio
async def test_not_found():
    from rsapigee import mgmt_unit, revision, util
    from pykern import pkunit
    from pykern.pkcollections import PKDict

    async with mgmt_unit.Setup(
        replies=PKDict({"GET sharedflows/sf1/revisions": PKDict(body=[])}),
    ) as s:
        with pkunit.pkexcept(util.NotFound):
            await revision.latest_revision(s.connection, "sharedflowbundle", "sf1")
        # unmatched request is a 404
        with pkunit.pkexcept(util.NotFound):
            await revision.latest_revision(s.connection, "sharedflowbundle", "sf2")
        pkunit.pkeq(
            ["GET sharedflows/sf1/revisions", "GET sharedflows/sf2/revisions"],
            s.call_keys(),
        )


@pytest.mark.asyncio
async def test_explicit():
    from rsapigee import mgmt_unit, revision
    from pykern import pkunit
    from pykern.pkcollections import PKDict

    async with mgmt_unit.Setup() as s:
        for v in (7, "7", PKDict(name="7")):
            pkunit.pkeq(
                7,
                await revision.resolve_revision_or_latest(
                    s.connection, "apiproxy", "p1", v
                ),
            )
        pkunit.pkeq([], s.calls)
