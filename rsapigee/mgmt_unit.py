"""Fake management server for `rsapigee` tests

The server runs in the test's event loop, records every request in
`Setup.calls`, and answers from canned replies keyed by
``"<METHOD> <path>"`` where path is relative to the organization, e.g.
``"GET apis/p1/revisions"``. A reply value may be:

- PKDict(status=, body=): same reply every time (body may be bytes)
- list of PKDict: consumed in order, last one repeats
- callable: called with the recorded call, returns PKDict

Unmatched requests get a 404.

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

# Defer as many rsapigee imports as possible to defer pkconfig running
from pykern.pkcollections import PKDict
import re
import tornado.httpserver
import tornado.netutil
import tornado.web

_PATH_RE = re.compile(r"^.*?/v1/organizations/[^/]+/(.*)$")


class Setup:
    """Usage::

        async with mgmt_unit.Setup(
            replies=PKDict({"GET apis/p1/revisions": PKDict(body=["1", "2"])}),
        ) as s:
            pkunit.pkeq(2, await revision.latest_revision(s.connection, "apiproxy", "p1"))
            pkunit.pkeq(["GET apis/p1/revisions"], s.call_keys())

    The modern surface is detected from the base url so ``modern=True``
    puts the modern host name in the fake server's path.

    Args:
        replies (PKDict): canned replies [None]
        modern (bool): connection talks to the modern surface [False]
        org_name (str): organization ["org1"]
        connection_kwargs (dict): passed to `mgmt.Connection` [None]
    """

    ORG_NAME = "org1"

    TOKEN = "mgmt_unit_token"

    def __init__(self, replies=None, modern=False, org_name=None, **connection_kwargs):
        self.calls = []
        self.replies = PKDict(replies or ())
        self.modern = modern
        self.org_name = org_name or self.ORG_NAME
        self.connection_kwargs = PKDict(connection_kwargs)
        self.connection = None
        self._server = None

    def call_keys(self):
        """Method and path of each recorded call

        Returns:
            list: ``"<METHOD> <path>"`` in order received
        """
        return [c.key for c in self.calls]

    def reply(self, call):
        r = self.replies.get(call.key)
        if r is None:
            return PKDict(status=404, body=PKDict(error=f"not found {call.key}"))
        if callable(r):
            return r(call)
        if isinstance(r, list):
            return r.pop(0) if len(r) > 1 else r[0]
        return r

    def _connection(self, port):
        from rsapigee import mgmt

        s = f"http://127.0.0.1:{port}"
        if self.modern:
            s += "/" + mgmt.modern_host()
        return mgmt.Connection(
            s,
            self.org_name,
            **self.connection_kwargs.pksetdefault(token=self.TOKEN),
        )

    async def __aenter__(self):
        s = tornado.netutil.bind_sockets(0, "127.0.0.1")
        self._server = tornado.httpserver.HTTPServer(
            tornado.web.Application([(r"/.*", _Handler, PKDict(setup=self))]),
        )
        self._server.add_sockets(s)
        self.connection = self._connection(s[0].getsockname()[1])
        return self

    async def __aexit__(self, *args, **kwargs):
        self._server.stop()
        await self._server.close_all_connections()
        return False


class _Handler(tornado.web.RequestHandler):
    def initialize(self, setup):
        self.setup = setup

    def delete(self):
        self._reply()

    def get(self):
        self._reply()

    def post(self):
        self._reply()

    def _record(self):
        r = self.request
        m = _PATH_RE.search(r.path)
        rv = PKDict(
            method=r.method,
            path=m.group(1) if m else r.path,
            query=PKDict({k: v[-1].decode() for k, v in r.query_arguments.items()}),
            headers=PKDict({k.lower(): v for k, v in r.headers.get_all()}),
            body=r.body,
            form=PKDict({k: v[-1].decode() for k, v in r.body_arguments.items()}),
            files=PKDict({k: v[0].body for k, v in r.files.items()}),
        )
        rv.key = f"{rv.method} {rv.path}"
        self.setup.calls.append(rv)
        return rv

    def _reply(self):
        from pykern import pkjson

        r = self.setup.reply(self._record())
        self.set_status(r.get("status", 200))
        b = r.get("body", PKDict())
        if isinstance(b, bytes):
            self.set_header("content-type", "application/octet-stream")
            self.write(b)
            return
        self.set_header("content-type", "application/json")
        self.write(pkjson.dump_bytes(b))
