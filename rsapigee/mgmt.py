"""Management API connection: request building and response classification

A `Connection` is shared by all operations. It builds request
descriptions (`Connection.request`), makes sure each one carries a
fresh bearer token, sends it with `tornado.httpclient.AsyncHTTPClient`,
and interprets the response with `classify`.

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

from pykern import pkconfig
from pykern import pkjson
from pykern.pkcollections import PKDict
from pykern.pkdebug import pkdc, pkdlog, pkdp
import enum
import rsapigee.util
import tornado.httpclient
import urllib.parse

_cfg = None

_JSON_TYPE = "application/json"

_FORM_TYPE = "application/x-www-form-urlencoded"


class AssetType(enum.Enum):
    """Kinds of deployable assets

    Attributes:
        collection (str): path segment of the collection in the management API
        bundle_root (str): top-level folder in a bundle
    """

    API_PROXY = ("apis", "apiproxy")
    SHARED_FLOW = ("sharedflows", "sharedflowbundle")

    def __init__(self, collection, bundle_root):
        self.collection = collection
        self.bundle_root = bundle_root

    @classmethod
    def from_any(cls, value):
        """Convert enum members and legacy names

        Args:
            value (object): `AssetType` or one of apiproxy, proxy, sharedflowbundle, sharedflow
        Returns:
            AssetType: member
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and (rv := _ASSET_TYPE_ALIASES.get(value)):
            return rv
        raise rsapigee.util.UnsupportedAssetType("unknown asset_type={}", value)

    def is_proxy(self):
        return self is self.API_PROXY


_ASSET_TYPE_ALIASES = PKDict(
    apiproxy=AssetType.API_PROXY,
    proxy=AssetType.API_PROXY,
    sharedflow=AssetType.SHARED_FLOW,
    sharedflowbundle=AssetType.SHARED_FLOW,
)


class Connection:
    """Authenticated session with an organization

    ``token_refresher`` is called before every request. It is passed
    this connection and must return a valid bearer token; it is
    responsible for caching and refreshing.

    Args:
        mgmt_server (str): scheme and host, e.g. https://apigee.googleapis.com
        org_name (str): organization
        token (str): static bearer token [None]
        token_refresher (coroutine function): returns a bearer token [None]
        verbosity (int): > 0 logs every request line [0]
        http_client (AsyncHTTPClient): transport [shared instance]
        default_delay (int): seconds to drain before swap on legacy surface [cfg.default_delay]
        request_timeout (int): seconds for each request [cfg.request_timeout]
    """

    def __init__(
        self,
        mgmt_server,
        org_name,
        token=None,
        token_refresher=None,
        verbosity=0,
        http_client=None,
        default_delay=None,
        request_timeout=None,
    ):
        _init()
        if not org_name:
            raise rsapigee.util.InvalidArgument("org_name is required")
        self.org_name = org_name
        self.url_base = f"{mgmt_server.rstrip('/')}/v1/organizations/{org_name}"
        self.verbosity = verbosity
        self.default_delay = (
            _cfg.default_delay if default_delay is None else default_delay
        )
        self.request_timeout = request_timeout or _cfg.request_timeout
        self._http_client = http_client
        self._token = token
        self._token_refresher = token_refresher

    async def call(self, method, *path, accepted=(200,), binary=False, **kwargs):
        """Build a request and `fetch` it

        Args:
            method (str): GET, POST, DELETE
            path (str): segments appended to `url_base`
            accepted (tuple): status codes which are success [(200,)]
            binary (bool): return raw bytes [False]
            kwargs (dict): passed to `request`
        Returns:
            object: see `classify`
        """
        return await self.fetch(
            self.request(method, *path, **kwargs),
            accepted=accepted,
            binary=binary,
        )

    async def fetch(self, request, accepted=(200,), binary=False):
        """Send the request with a fresh token and classify the response

        Args:
            request (PKDict): from `request`
            accepted (tuple): status codes which are success [(200,)]
            binary (bool): return raw bytes [False]
        Returns:
            object: see `classify`
        """
        h = await self.fresh_headers()
        h.update(request.headers)
        if self.verbosity > 0:
            pkdlog("{} {}", request.method, request.url)
        else:
            pkdc("{} {} headers={}", request.method, request.url, list(h.keys()))
        r = await self._client().fetch(
            tornado.httpclient.HTTPRequest(
                request.url,
                method=request.method,
                headers=h,
                body=request.body,
                body_producer=request.body_producer,
                request_timeout=self.request_timeout,
            ),
            raise_error=False,
        )
        return classify(r, accepted, binary=binary, url=request.url)

    async def fresh_headers(self):
        """Headers which authenticate the next request

        Returns:
            PKDict: accept and (if available) authorization
        """
        if self._token_refresher:
            self._token = await self._token_refresher(self)
        rv = PKDict(accept=_JSON_TYPE)
        if self._token:
            rv.authorization = "Bearer " + self._token
        return rv

    def is_modern(self):
        """Managed (modern) surface vs legacy surface

        Returns:
            bool: True if `url_base` refers to the modern surface
        """
        return modern_host() in self.url_base

    def request(
        self,
        method,
        *path,
        query=None,
        form=None,
        body=None,
        body_producer=None,
        headers=None,
    ):
        """Normalized description of one management API request

        Args:
            method (str): GET, POST, DELETE
            path (object): segments, each is quoted
            query (dict): query parameters [None]
            form (dict): urlencoded as the body; None values are dropped [None]
            body (bytes): raw body [None]
            body_producer (coroutine function): streams the body [None]
            headers (dict): added to the request [None]
        Returns:
            PKDict: method, url, headers, body, body_producer
        """
        rv = PKDict(
            method=method,
            url=self.uri(*path, query=query),
            headers=PKDict(headers or ()),
            body=body,
            body_producer=body_producer,
        )
        if form is not None:
            rv.body = urllib.parse.urlencode(
                [(k, v) for k, v in form.items() if v is not None]
            )
            rv.headers["content-type"] = _FORM_TYPE
        elif method == "POST" and body is None and body_producer is None:
            rv.body = b""
        return rv

    def uri(self, *path, query=None):
        rv = "/".join(
            [self.url_base] + [urllib.parse.quote(str(p), safe="") for p in path],
        )
        if query:
            rv += "?" + urllib.parse.urlencode(query)
        return rv

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.url_base}>"

    def _client(self):
        if self._http_client is None:
            self._http_client = tornado.httpclient.AsyncHTTPClient()
        return self._http_client


def modern_host():
    """Base urls containing this host are the modern managed surface

    Returns:
        str: host name
    """
    _init()
    return _cfg.modern_host


def classify(response, accepted, binary=False, url=None):
    """Interpret the response given the accepted status codes

    Args:
        response (HTTPResponse): from tornado
        accepted (tuple): status codes which are success
        binary (bool): return the raw body [False]
        url (str): for error messages [None]
    Returns:
        object: bytes if binary, else parsed JSON (PKDict or list) or str
    """
    b = response.body or b""
    if response.code not in accepted:
        raise rsapigee.util.TransportError(
            status=response.code,
            body=_parse(b),
            url=url or response.effective_url,
        )
    if binary:
        return b
    rv = _parse(b)
    pkdc("status={} body={}", response.code, rv)
    return rv


def _init():
    global _cfg
    if _cfg:
        return
    _cfg = pkconfig.init(
        default_delay=(
            8,
            int,
            "seconds the legacy surface drains in-flight requests before swapping a deployment",
        ),
        modern_host=(
            "apigee.googleapis.com",
            str,
            "base urls containing this are the modern managed surface",
        ),
        request_timeout=(
            120,
            int,
            "seconds before a request to the management server times out",
        ),
    )


def _parse(body):
    if not body:
        return PKDict()
    try:
        return pkjson.load_any(body)
    except ValueError:
        return body.decode("utf-8", "replace")
