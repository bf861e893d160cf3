"""Discover revisions of an asset and resolve "latest"

Revisions are compared as integers. The server returns them as strings
so sorting them lexically would make "9" newer than "10".

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

from pykern.pkdebug import pkdc, pkdlog, pkdp
import rsapigee.mgmt
import rsapigee.util


async def latest_revision(conn, asset_type, name):
    """Highest revision of the asset

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
    Returns:
        int: latest revision
    Raises:
        rsapigee.util.NotFound: asset has no revisions or does not exist
    """
    rv = await revisions(conn, asset_type, name)
    if not rv:
        raise rsapigee.util.NotFound(
            "no revisions asset_type={} name={}",
            rsapigee.mgmt.AssetType.from_any(asset_type).name,
            name,
        )
    return rv[-1]


async def resolve_revision_or_latest(conn, asset_type, name, revision=None):
    """Explicit revision (no network call) or `latest_revision`

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
        revision (object): int, str, or dict with ``name`` [None]
    Returns:
        int: revision
    """
    if revision is not None:
        return revision_value(revision)
    return await latest_revision(conn, asset_type, name)


def revision_value(revision):
    """Normalize a bare or structured revision

    Args:
        revision (object): int, numeric str, or dict with ``name``
    Returns:
        int: revision number
    """
    v = revision.get("name") if isinstance(revision, dict) else revision
    if isinstance(v, bool):
        raise rsapigee.util.InvalidArgument("invalid revision={}", revision)
    try:
        rv = int(v)
    except (TypeError, ValueError):
        raise rsapigee.util.InvalidArgument("invalid revision={}", revision)
    if rv < 1:
        raise rsapigee.util.InvalidArgument("revision={} must be positive", revision)
    return rv


async def revisions(conn, asset_type, name):
    """All revisions of the asset in ascending numeric order

    A 404 is treated as no revisions.

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
    Returns:
        list: int revisions, possibly empty
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    r = await conn.call(
        "GET",
        t.collection,
        rsapigee.util.require_name(name),
        "revisions",
        accepted=(200, 404),
    )
    pkdc("asset_type={} name={} revisions={}", t.name, name, r)
    if not isinstance(r, list):
        return []
    return sorted(revision_value(x) for x in r)
