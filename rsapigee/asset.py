"""Import and export bundles, and read, update, or delete assets

Imports accept a bundle zip or a directory containing the bundle root.
Directories are zipped by `rsapigee.bundle.produce_zip` into a
temporary archive which is removed once the upload finishes, whether
or not it succeeded.

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

from pykern import pkio
from pykern import pkjson
from pykern.pkcollections import PKDict
from pykern.pkdebug import pkdc, pkdlog, pkdp
import asyncio
import datetime
import rsapigee.bundle
import rsapigee.mgmt
import rsapigee.revision
import rsapigee.util
import urllib3

_CHUNK_SIZE = 64 * 1024

_ZIP_EXT = ".zip"


async def delete(conn, asset_type, name, revision=None, policy=None):
    """Delete an asset, one of its revisions, or a policy in a revision

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
        revision (object): revision to delete [None]
        policy (str): policy in revision [None]
    Returns:
        PKDict: server response
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    p = [t.collection, rsapigee.util.require_name(name)]
    if revision is not None:
        p.extend(("revisions", rsapigee.revision.revision_value(revision)))
        if policy:
            p.extend(("policies", policy))
    elif policy:
        raise rsapigee.util.InvalidArgument(
            "revision is required with policy={}", policy
        )
    pkdlog("delete {}", "/".join(map(str, p)))
    return await conn.call("DELETE", *p)


async def export(conn, asset_type, name, revision=None):
    """Download a revision (latest if not supplied) as a bundle

    Nothing is written to disk; the caller saves ``buffer``.

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
        revision (object): see `revision.revision_value` [latest]
    Returns:
        PKDict: filename (suggested) and buffer (bytes)
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    n = rsapigee.util.require_name(name)
    r = await rsapigee.revision.resolve_revision_or_latest(conn, t, n, revision)
    pkdlog("export {} name={} revision={}", t.name, n, r)
    return PKDict(
        filename="{}-{}-{}-r{}-{}{}".format(
            t.bundle_root,
            conn.org_name,
            n,
            r,
            datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d-%H%M%S"),
            _ZIP_EXT,
        ),
        # Server rejects application/octet-stream
        buffer=await conn.call(
            "GET",
            t.collection,
            n,
            "revisions",
            r,
            query=PKDict(format="bundle"),
            headers=PKDict(accept="*/*"),
            binary=True,
        ),
    )


async def get(
    conn, asset_type, name=None, revision=None, policy=None, proxy_endpoint=None
):
    """List assets or describe an asset, revision, policy, or proxy endpoint

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name [None]
        revision (object): revision [None]
        policy (str): policy in revision [None]
        proxy_endpoint (str): proxy endpoint in revision [None]
    Returns:
        object: server response
    """
    return await conn.call(
        "GET", *_describe_path(asset_type, name, revision, policy, proxy_endpoint)
    )


async def import_bundle(conn, asset_type, source, name=None):
    """Import a zip or a directory as a new revision

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        source (str or py.path): zip file or directory containing the bundle root
        name (str): asset name [inferred from descriptor]
    Returns:
        PKDict: import result (name, revision, ...)
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    s = pkio.py_path(source)
    if s.check(file=True) and s.ext == _ZIP_EXT:
        return await import_from_zip(
            conn,
            t,
            s,
            name or rsapigee.bundle.infer_name_from_zip(s, t),
        )
    if s.check(dir=True):
        return await import_from_dir(conn, t, s, name)
    raise rsapigee.util.InvalidSource(
        "source={} is neither a zip file nor a directory", s
    )


async def import_from_dir(conn, asset_type, src_dir, name=None):
    """Package the directory and import it

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        src_dir (py.path): directory containing the bundle root
        name (str): asset name [inferred from descriptor]
    Returns:
        PKDict: import result
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    d = pkio.py_path(src_dir)
    if not d.check(dir=True):
        raise rsapigee.util.NotADirectory("path={} is not a directory", d)
    n = name or rsapigee.bundle.infer_name_from_dir(d.join(t.bundle_root))
    pkdlog("import {} name={} dir={}", t.name, n, d)
    z = rsapigee.bundle.produce_zip(d, t)
    try:
        return await import_from_zip(conn, t, z, n)
    finally:
        pkio.unchecked_remove(z)


async def import_from_zip(conn, asset_type, path, name):
    """Upload a bundle zip as a new revision

    Proxies which ship a ``package.json`` without ``node_modules.zip``
    have their dependencies installed by the server after the import.
    If that fails, or the import result has no usable revision,
    `rsapigee.util.DependencyInstallError` is raised with the import
    result attached.

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        path (py.path): bundle zip
        name (str): asset name
    Returns:
        PKDict: import result
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    p = pkio.py_path(path)
    n = rsapigee.util.require_name(name)
    if not p.check(file=True):
        raise rsapigee.util.InvalidSource("archive={} does not exist", p)
    rv = await _upload(conn, t, n, p)
    pkdlog(
        "imported {} name={} revision={}", t.name, rv.get("name"), rv.get("revision")
    )
    if rsapigee.bundle.needs_npm_install(t, p):
        try:
            await _npm_install(conn, rv.get("name") or n, rv.get("revision"))
        except rsapigee.util.Error as e:
            raise rsapigee.util.DependencyInstallError(rv, e)
    return rv


async def policies(conn, asset_type, name, revision, policy=None):
    """List policies in a revision or describe one

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
        revision (object): revision
        policy (str): policy name [None]
    Returns:
        object: server response
    """
    return await _revision_child(conn, asset_type, name, revision, "policies", policy)


async def resources(conn, asset_type, name, revision, resource=None):
    """List resources in a revision or fetch one

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
        revision (object): revision
        resource (str): e.g. ``jsc/x.js`` [None]
    Returns:
        object: server response
    """
    return await _revision_child(
        conn, asset_type, name, revision, "resources", resource
    )


async def update(
    conn,
    asset_type,
    name,
    value,
    revision=None,
    policy=None,
    proxy_endpoint=None,
):
    """Replace the definition of an asset, revision, policy, or proxy endpoint

    Args:
        conn (mgmt.Connection): connection
        asset_type (object): see `mgmt.AssetType.from_any`
        name (str): asset name
        value (object): sent as JSON
        revision (object): revision [None]
        policy (str): policy in revision [None]
        proxy_endpoint (str): proxy endpoint in revision [None]
    Returns:
        object: server response
    """
    p = _describe_path(
        asset_type, rsapigee.util.require_name(name), revision, policy, proxy_endpoint
    )
    pkdlog("update {}", "/".join(map(str, p)))
    return await conn.call(
        "POST",
        *p,
        body=pkjson.dump_bytes(value),
        headers=PKDict({"content-type": "application/json"}),
    )


def _describe_path(asset_type, name, revision, policy, proxy_endpoint):
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    rv = [t.collection]
    if revision is not None:
        rv.extend(
            (
                rsapigee.util.require_name(name),
                "revisions",
                rsapigee.revision.revision_value(revision),
            ),
        )
        if policy:
            rv.extend(("policies", policy))
        elif proxy_endpoint:
            rv.extend(("proxies", proxy_endpoint))
    elif name:
        rv.append(name)
    return rv


def _file_producer(path):
    async def _produce(write):
        with open(str(path), "rb") as f:
            while c := await asyncio.to_thread(f.read, _CHUNK_SIZE):
                await write(c)

    return _produce


async def _npm_install(conn, name, revision):
    r = rsapigee.revision.revision_value(revision)
    pkdlog("npm install name={} revision={}", name, r)
    return await conn.call(
        "POST",
        "apis",
        name,
        "revisions",
        r,
        "npm",
        form=PKDict(command="install"),
    )


async def _revision_child(conn, asset_type, name, revision, child, item):
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    p = [
        t.collection,
        rsapigee.util.require_name(name),
        "revisions",
        rsapigee.revision.revision_value(revision),
        child,
    ]
    if item:
        # resource names are type/name, e.g. jsc/x.js
        p.extend(item.split("/"))
    return await conn.call("GET", *p)


async def _upload(conn, asset_type, name, path):
    q = PKDict(action="import", name=name)
    if conn.is_modern():
        b, c = urllib3.encode_multipart_formdata(
            PKDict(
                file=(
                    path.basename,
                    await asyncio.to_thread(pkio.read_binary, path),
                    "application/zip",
                ),
            ),
        )
        return await conn.call(
            "POST",
            asset_type.collection,
            query=q,
            body=b,
            headers={"content-type": c},
            accepted=(200, 201),
        )
    return await conn.call(
        "POST",
        asset_type.collection,
        query=q,
        body_producer=_file_producer(path),
        headers={
            "content-type": "application/octet-stream",
            "content-length": str(path.size()),
        },
        accepted=(201,),
    )
