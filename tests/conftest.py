"""Shared fixtures: canned requests.Response objects and sample CSV."""

import pytest
import requests
from requests.cookies import cookiejar_from_dict

SAMPLE_CSV = (
    '"Severity","Time","Recovery time","Status","Host","Problem","Duration","Ack","Actions","Tags"\n'
    ",2024-01-01T00:00,,PROBLEM,host1,disk full,1h\n"
    ",2024-01-01T01:00,,RESOLVED,host2,cpu high,2h\n"
)


def _make_response(status_code, cookies=None, body=b"", url="http://zbx.example/"):
    r = requests.Response()
    r.status_code = status_code
    r.url = url
    r._content = body
    r._content_consumed = True
    if cookies:
        r.cookies = cookiejar_from_dict(cookies)
    return r


@pytest.fixture
def make_response():
    return _make_response


@pytest.fixture
def sample_csv():
    return SAMPLE_CSV
