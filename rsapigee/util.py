"""Errors raised by rsapigee and small parsing helpers

All errors derive from `Error`, which formats its message the same way
`pykern.util.APIError` does so callers can log ``str(e)`` directly.

:copyright: Copyright (c) 2026 RadiaSoft LLC.  All Rights Reserved.
:license: http://www.apache.org/licenses/LICENSE-2.0.html
"""

# Root module: avoid global rsapigee imports


class Error(Exception):
    """Superclass for all rsapigee errors"""

    def __init__(self, fmt, *args, **kwargs):
        from pykern.pkdebug import pkdformat

        super().__init__(pkdformat(fmt, *args, **kwargs) if args or kwargs else fmt)


class AmbiguousSource(Error):
    """Zero or more than one bundle descriptor found"""

    pass


class DeadlineExceeded(Error):
    """Deadline passed before the step could be issued"""

    pass


class DependencyInstallError(Error):
    """Import succeeded but the server side dependency install failed

    Attributes:
        import_result (PKDict): what the import returned
        error (Error): why the install failed, usually `TransportError`
    """

    def __init__(self, import_result, error):
        super().__init__(
            "npm install failed name={} revision={} error={}",
            import_result.get("name"),
            import_result.get("revision"),
            error,
        )
        self.import_result = import_result
        self.error = error


class InvalidArgument(Error):
    """Missing or malformed name, environment, or revision"""

    pass


class InvalidSource(Error):
    """Import source is neither a zip file nor a directory"""

    pass


class NotADirectory(Error):
    pass


class NotFound(Error):
    """Asset or revision does not exist"""

    pass


class TransportError(Error):
    """Status code was not in the accepted set

    Attributes:
        status (int): http status code
        body (object): parsed response body
    """

    def __init__(self, status, body, url=None):
        super().__init__("status={} url={} body={}", status, url, body)
        self.status = status
        self.body = body
        self.url = url


class UnrecognizedDescriptor(Error):
    """Descriptor root is neither APIProxy nor SharedFlowBundle"""

    pass


class UnsupportedAssetType(Error):
    pass


class UnsupportedOption(Error):
    """Option does not apply to this asset type"""

    pass


def environment_name(environment):
    """Extract the environment name

    Args:
        environment (str or dict): name or structured reference with ``name``
    Returns:
        str: environment name
    """
    rv = environment.get("name") if isinstance(environment, dict) else environment
    if not rv or not isinstance(rv, str):
        raise InvalidArgument("environment is required environment={}", environment)
    return rv


def require_name(name):
    if not name or not isinstance(name, str):
        raise InvalidArgument("asset name is required name={}", name)
    return name
