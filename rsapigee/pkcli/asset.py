"""Import, export, deploy, and undeploy proxies and shared flows

Connection parameters come from the environment, e.g.::

    export RSAPIGEE_PKCLI_ASSET_MGMT_SERVER=https://apigee.googleapis.com
    export RSAPIGEE_PKCLI_ASSET_ORG=my-org
    export RSAPIGEE_PKCLI_ASSET_TOKEN=$(gcloud auth print-access-token)
    rsapigee asset import-bundle ./my-proxy
    rsapigee asset deploy my-proxy test

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

from pykern import pkconfig
from pykern import pkio
from pykern.pkdebug import pkdc, pkdlog, pkdp
import asyncio

_cfg = None


def deploy(
    name,
    environment,
    revision=None,
    asset_type="apiproxy",
    basepath=None,
    service_account=None,
    override=True,
    delay=None,
):
    """Deploy revision (default: latest) to environment

    Args:
        name (str): asset name
        environment (str): target environment
        revision (str): revision [latest]
        asset_type (str): apiproxy or sharedflowbundle [apiproxy]
        basepath (str): proxies only [None]
        service_account (str): identity of deployed proxy [None]
        override (bool): supersede existing deployment [True]
        delay (int): seconds to drain before swap on legacy surface [config]
    Returns:
        PKDict: deployment acknowledgement
    """
    from rsapigee import deployment

    return _run(
        deployment.deploy(
            _connection(),
            asset_type,
            name,
            environment,
            revision=revision,
            options=deployment.DeployOptions(
                override=override,
                delay=delay,
                service_account=service_account,
                basepath=basepath,
            ),
        ),
    )


def export(name, revision=None, asset_type="apiproxy", out_dir="."):
    """Download revision (default: latest) into out_dir

    Args:
        name (str): asset name
        revision (str): revision [latest]
        asset_type (str): apiproxy or sharedflowbundle [apiproxy]
        out_dir (str): where to write the zip [.]
    Returns:
        str: path of the zip
    """
    from rsapigee import asset

    r = _run(asset.export(_connection(), asset_type, name, revision=revision))
    return str(pkio.write_binary(pkio.py_path(out_dir).join(r.filename), r.buffer))


def import_bundle(source, name=None, asset_type="apiproxy"):
    """Import a zip or directory as a new revision

    Args:
        source (str): zip file or directory containing the bundle root
        name (str): asset name [from descriptor]
        asset_type (str): apiproxy or sharedflowbundle [apiproxy]
    Returns:
        PKDict: import result
    """
    from rsapigee import asset

    return _run(asset.import_bundle(_connection(), asset_type, source, name=name))


def undeploy(name, environment, revision=None, asset_type="apiproxy"):
    """Undeploy revision or all revisions deployed in environment

    Args:
        name (str): asset name
        environment (str): environment
        revision (str): revision [all deployed]
        asset_type (str): apiproxy or sharedflowbundle [apiproxy]
    Returns:
        object: server response or per revision outcomes
    """
    from pykern import pkcli
    from rsapigee import deployment

    rv = _run(
        deployment.undeploy(
            _connection(), asset_type, name, environment, revision=revision
        ),
    )
    if isinstance(rv, list):
        if e := [o for o in rv if o.error]:
            pkcli.command_error(
                "failed revisions={}", [f"{o.revision}: {o.error}" for o in e]
            )
        return [o.revision for o in rv]
    return rv


def _connection():
    from rsapigee import mgmt

    _init()
    return mgmt.Connection(
        _cfg.mgmt_server,
        _cfg.org,
        token=_cfg.token,
        verbosity=_cfg.verbosity,
    )


def _init():
    global _cfg
    if _cfg:
        return
    _cfg = pkconfig.init(
        mgmt_server=pkconfig.Required(
            str, "management server, e.g. https://apigee.googleapis.com"
        ),
        org=pkconfig.Required(str, "organization"),
        token=pkconfig.Required(str, "bearer token"),
        verbosity=(0, int, "log every request when > 0"),
    )


def _run(coro):
    return asyncio.run(coro)
