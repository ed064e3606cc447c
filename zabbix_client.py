"""
Login and CSV export against the Zabbix web frontend.

Both calls go through a plain requests.Session:
- login posts the sign-in form and reads the zbx_session cookie off the
  first (unredirected) response
- export fetches the problem view as CSV with that cookie attached
"""

import logging
import warnings

import requests
from requests.exceptions import (
    InvalidSchema,
    InvalidURL,
    MissingSchema,
    RequestException,
    URLRequired,
)

from report_errors import (
    ExportRequestBuildError,
    ExportRequestError,
    ExportStatusError,
    LoginRequestBuildError,
    LoginRequestError,
    MissingCookieError,
    WrongCredentialsError,
)

SESSION_COOKIE = "zbx_session"
LOGIN_PATH = "/index.php"
EXPORT_PATH = "/zabbix.php?action=problem.view.csv"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = "Zabbix-Problem-Report/1.0"

# raised while preparing a request, before anything goes on the wire
_BUILD_ERRORS = (MissingSchema, InvalidSchema, InvalidURL, URLRequired)


def make_http_session(verify_ssl=True):
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    session.verify = verify_ssl
    if not verify_ssl:
        from urllib3.exceptions import InsecureRequestWarning
        warnings.filterwarnings("ignore", category=InsecureRequestWarning)
    return session


def _prepare(session, request, build_error, what):
    try:
        return session.prepare_request(request)
    except _BUILD_ERRORS as e:
        raise build_error(f"failed to build the {what} request, error: {e}") from e


def _send(session, prepared, build_error, transport_error, what, timeout, **kwargs):
    try:
        return session.send(prepared, timeout=timeout, **kwargs)
    except _BUILD_ERRORS as e:
        # no connection adapter for the scheme, bad host label, ...
        raise build_error(f"failed to build the {what} request, error: {e}") from e
    except RequestException as e:
        raise transport_error(f"failed to {what}, error: {e}") from e


def zabbix_login(base_url, username, password, session=None, timeout=DEFAULT_TIMEOUT):
    """Sign in and return the value of the ``zbx_session`` cookie.

    The form body is url-encoded by requests, so credentials containing
    ``@``, spaces or ``&`` reach the server intact.

    Redirects are not followed: the cookie that identifies the signed-in
    user is set on the 302 itself, and following it would replace the
    response we need to inspect.

    Raises LoginRequestBuildError, LoginRequestError, WrongCredentialsError
    or MissingCookieError.
    """
    session = session or make_http_session()
    form = {
        "name": username,
        "password": password,
        "enter": "Sign in",
    }
    request = requests.Request(
        "POST",
        base_url + LOGIN_PATH,
        data=form,
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    prepared = _prepare(session, request, LoginRequestBuildError, "login")

    logging.info("Signing in to %s as %s", base_url, username)
    response = _send(
        session, prepared, LoginRequestBuildError, LoginRequestError,
        "login", timeout, allow_redirects=False,
    )
    with response:
        if response.status_code != requests.codes.found:
            raise WrongCredentialsError(
                f"wrong credentials, server responded with status {response.status_code} "
                "instead of a redirect"
            )

        for cookie in response.cookies:
            if cookie.name == SESSION_COOKIE:
                logging.debug("Received %s cookie", SESSION_COOKIE)
                return cookie.value

    raise MissingCookieError("server didn't return a session cookie")


def zabbix_export_csv(base_url, session_token, session=None, timeout=DEFAULT_TIMEOUT):
    """Fetch the problem view export and return the CSV body as text."""
    session = session or make_http_session()
    request = requests.Request(
        "GET",
        base_url + EXPORT_PATH,
        # explicit header: the session jar may already hold the cookie from login
        headers={"Cookie": f"{SESSION_COOKIE}={session_token}"},
    )
    prepared = _prepare(session, request, ExportRequestBuildError, "export CSV")

    logging.info("Exporting problem CSV from %s", base_url)
    response = _send(
        session, prepared, ExportRequestBuildError, ExportRequestError,
        "export the CSV", timeout,
    )
    with response:
        if response.status_code != requests.codes.ok:
            raise ExportStatusError(
                f"export CSV request returned status {response.status_code}",
                status_code=response.status_code,
            )
        # text/csv without a charset would otherwise be decoded as latin-1
        body = response.content.decode("utf-8-sig", errors="replace")

    logging.info("Export CSV received (%d bytes)", len(response.content))
    return body
