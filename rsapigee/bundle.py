"""Package a directory tree as a bundle and infer the asset name

A bundle is a zip whose members all live under the asset type's
bundle root, e.g. ``apiproxy/apiproxy.xml``, ``apiproxy/policies/...``.
The asset name is the ``name`` attribute of the single descriptor
directly under the bundle root.

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

from pykern import pkconfig
from pykern import pkio
from pykern.pkdebug import pkdc, pkdlog, pkdp
import os
import pykern.util
import re
import rsapigee.mgmt
import rsapigee.util
import tempfile
import time
import xml.etree.ElementTree
import zipfile

#: Root elements of descriptors which carry the asset name
DESCRIPTOR_ROOTS = frozenset(("APIProxy", "SharedFlowBundle"))

#: Dependency manifest which triggers a server side install
NODE_PACKAGE = "resources/node/package.json"

#: Precomputed dependencies which make the install unnecessary
NODE_MODULES_ZIP = "resources/node/node_modules.zip"

_EXCLUDE_BASENAMES = frozenset((".jshintrc", ".jslintrc", ".tern-port"))

_EXCLUDE_SEGMENT = "node_modules"

_cfg = None


def include_in_bundle(path):
    """Is the file part of a bundle?

    Excludes anything in ``node_modules``, backup files, lint and tern
    config, and emacs temporary files.

    Args:
        path (str): slash separated path relative to the bundle root
    Returns:
        bool: True if file should be zipped
    """
    p = path.split("/")
    b = p[-1]
    if _EXCLUDE_SEGMENT in p:
        return False
    if b.endswith("~") or b in _EXCLUDE_BASENAMES:
        return False
    if b.startswith(".#"):
        return False
    if len(b) > 1 and b.startswith("#") and b.endswith("#"):
        return False
    return True


def infer_name_from_dir(bundle_root_dir):
    """Name from the single descriptor in the bundle root

    Args:
        bundle_root_dir (py.path): e.g. ``<src>/apiproxy``
    Returns:
        str: asset name
    """
    d = pkio.py_path(bundle_root_dir)
    if not d.check(dir=True):
        raise rsapigee.util.NotADirectory("path={} is not a directory", d)
    x = [f for f in d.listdir(sort=True) if f.check(file=True) and f.ext == ".xml"]
    if len(x) != 1:
        raise rsapigee.util.AmbiguousSource(
            "found {} descriptors, expected 1 dir={}", len(x), d
        )
    return parse_name(pkio.read_binary(x[0]))


def infer_name_from_zip(path, asset_type):
    """Name from the single top-level descriptor in a bundle zip

    Zero or several descriptors are rejected exactly like
    `infer_name_from_dir` does.

    Args:
        path (py.path): zip file
        asset_type (object): see `mgmt.AssetType.from_any`
    Returns:
        str: asset name
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    r = re.compile(r"^" + re.escape(t.bundle_root) + r"/[^/]+\.xml$")
    with zipfile.ZipFile(str(path)) as z:
        x = [n for n in z.namelist() if r.search(n)]
        if len(x) != 1:
            raise rsapigee.util.AmbiguousSource(
                "found {} descriptors, expected 1 zip={}", len(x), path
            )
        return parse_name(z.read(x[0]))


def needs_npm_install(asset_type, path):
    """Proxy has a package.json but no node_modules.zip

    Args:
        asset_type (object): see `mgmt.AssetType.from_any`
        path (py.path): bundle zip
    Returns:
        bool: True if server must install dependencies
    """
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    if not t.is_proxy():
        return False
    with zipfile.ZipFile(str(path)) as z:
        n = frozenset(z.namelist())
    return (
        f"{t.bundle_root}/{NODE_PACKAGE}" in n
        and f"{t.bundle_root}/{NODE_MODULES_ZIP}" not in n
    )


def parse_name(xml_text):
    """Extract the name attribute of the descriptor's root element

    Args:
        xml_text (bytes or str): descriptor
    Returns:
        str: asset name
    """
    try:
        e = xml.etree.ElementTree.fromstring(xml_text)
    except xml.etree.ElementTree.ParseError as x:
        raise rsapigee.util.UnrecognizedDescriptor("unable to parse error={}", x)
    if e.tag not in DESCRIPTOR_ROOTS:
        raise rsapigee.util.UnrecognizedDescriptor("unexpected root element={}", e.tag)
    rv = e.get("name")
    if not rv:
        raise rsapigee.util.UnrecognizedDescriptor("element={} has no name", e.tag)
    pkdc("found name={}", rv)
    return rv


def produce_zip(src_dir, asset_type):
    """Zip ``<src_dir>/<bundle_root>`` into a new temporary file

    The caller owns the returned file and must remove it.

    Args:
        src_dir (py.path): directory containing the bundle root
        asset_type (object): see `mgmt.AssetType.from_any`
    Returns:
        py.path: zip file in `cfg.tmp_dir`
    """
    _init()
    t = rsapigee.mgmt.AssetType.from_any(asset_type)
    d = pkio.py_path(src_dir).join(t.bundle_root)
    if not d.check(dir=True):
        raise rsapigee.util.NotADirectory("path={} is not a directory", d)
    rv = pkio.py_path(_cfg.tmp_dir).join(
        f"{t.bundle_root}-{int(time.time() * 1000)}-{pykern.util.random_base62(8)}.zip",
    )
    n = 0
    try:
        with zipfile.ZipFile(str(rv), "w", zipfile.ZIP_DEFLATED) as z:
            for f in pkio.walk_tree(d):
                p = d.bestrelpath(f).replace(os.sep, "/")
                if not include_in_bundle(p):
                    pkdc("exclude {}", p)
                    continue
                z.write(str(f), arcname=f"{t.bundle_root}/{p}")
                n += 1
    except Exception:
        pkio.unchecked_remove(rv)
        raise
    pkdlog("zipped files={} bytes={} archive={}", n, rv.size(), rv)
    return rv


@pkconfig.parse_none
def _cfg_tmp_dir(value):
    return value or tempfile.gettempdir()


def _init():
    global _cfg
    if _cfg:
        return
    _cfg = pkconfig.init(
        tmp_dir=(None, _cfg_tmp_dir, "where temporary bundle archives are written"),
    )
