import logging

import pytest
import requests

from conftest import FakeResp, FakeSession
from garmin_export.config import (
    GARMIN_APP_URL,
    GARMIN_LEGACY_SESSION_URL,
    GARMIN_SSO_SIGNIN_URL,
    GARMIN_SSO_URL,
)
from garmin_export.errors import (
    AuthError,
    InvalidInputError,
    TicketNotFoundError,
    TicketRejectedError,
    TooManyRedirectsError,
)
from garmin_export.garmin_client.auth import SessionAuthenticator, extract_ticket_url
from garmin_export.models import Credentials

TICKET_URL = "https://connect.garmin.com/modern?ticket=ST-0123456-aBCDefgh1iJkLmN5opQ9R-cas"
SIGNIN_BODY = (
    "<script>var foo = 1;\n"
    'response_url = "https:\\/\\/connect.garmin.com\\/modern?ticket=ST-0123456-aBCDefgh1iJkLmN5opQ9R-cas";\n'
    "</script>"
)


def _authenticator(limiter, session, **kwargs):
    return SessionAuthenticator(limiter, session_factory=lambda: session, **kwargs)


def test_extract_ticket_url_unescapes_slashes():
    body = 'response_url = "https:\\/\\/host\\/path?ticket=XYZ";'
    assert extract_ticket_url(body) == "https://host/path?ticket=XYZ"


def test_extract_ticket_url_tolerates_whitespace():
    body = 'var x;\nresponse_url   =\t"https://host/path?ticket=ABC";'
    assert extract_ticket_url(body) == "https://host/path?ticket=ABC"


def test_extract_ticket_url_missing():
    with pytest.raises(TicketNotFoundError):
        extract_ticket_url("<html>Invalid sign in</html>")


def test_extract_ticket_url_ignores_plain_http():
    with pytest.raises(TicketNotFoundError):
        extract_ticket_url('response_url = "http://host/path?ticket=XYZ";')


def test_authenticate_full_handshake(limiter, credentials):
    session = FakeSession(
        [
            FakeResp(200, text=SIGNIN_BODY),
            FakeResp(302, headers={"Location": GARMIN_APP_URL}),
            FakeResp(200),
            FakeResp(302, headers={"Location": "/modern/"}),
            FakeResp(200),
        ]
    )
    result = _authenticator(limiter, session).authenticate(credentials)

    assert result is session
    methods_urls = [(m, u) for m, u, _ in session.calls]
    assert methods_urls == [
        ("POST", GARMIN_SSO_SIGNIN_URL),
        ("GET", TICKET_URL),
        ("GET", GARMIN_LEGACY_SESSION_URL),
        ("GET", GARMIN_APP_URL),
        ("GET", "https://connect.garmin.com/modern/"),
    ]
    post_kwargs = session.calls[0][2]
    assert post_kwargs["params"] == {"service": GARMIN_APP_URL}
    assert post_kwargs["data"] == {
        "username": "runner@example.com",
        "password": "s3cret",
        "embed": "false",
    }
    assert post_kwargs["headers"] == {"Origin": GARMIN_SSO_URL}
    assert all(kwargs["allow_redirects"] is False for _, _, kwargs in session.calls)
    assert limiter.waits == 5


def test_authenticate_without_optional_steps(limiter, credentials):
    session = FakeSession([FakeResp(200, text=SIGNIN_BODY), FakeResp(200)])
    auth = _authenticator(
        limiter, session, follow_app_redirects=False, legacy_session_ping=False
    )
    assert auth.authenticate(credentials) is session
    assert len(session.calls) == 2


def test_authenticate_ticket_not_found(limiter, credentials):
    session = FakeSession([FakeResp(200, text="<html>nope</html>")])
    with pytest.raises(TicketNotFoundError):
        _authenticator(limiter, session).authenticate(credentials)


def test_authenticate_signin_http_error(limiter, credentials):
    session = FakeSession([FakeResp(500, text="oops")])
    with pytest.raises(AuthError):
        _authenticator(limiter, session).authenticate(credentials)


def test_authenticate_ticket_rejected(limiter, credentials):
    session = FakeSession([FakeResp(200, text=SIGNIN_BODY), FakeResp(401)])
    with pytest.raises(TicketRejectedError):
        _authenticator(limiter, session).authenticate(credentials)


def test_legacy_ping_failure_is_not_fatal(limiter, credentials, caplog):
    session = FakeSession(
        [
            FakeResp(200, text=SIGNIN_BODY),
            FakeResp(200),
            requests.ConnectionError("boom"),
        ]
    )
    auth = _authenticator(limiter, session, follow_app_redirects=False)
    with caplog.at_level(logging.WARNING):
        assert auth.authenticate(credentials) is session
    assert "Legacy session ping failed" in caplog.text


def test_legacy_ping_error_status_is_not_fatal(limiter, credentials):
    session = FakeSession(
        [FakeResp(200, text=SIGNIN_BODY), FakeResp(200), FakeResp(500)]
    )
    auth = _authenticator(limiter, session, follow_app_redirects=False)
    assert auth.authenticate(credentials) is session


def test_redirect_chain_capped(limiter, credentials):
    loop = [FakeResp(302, headers={"Location": "/modern/loop"}) for _ in range(4)]
    session = FakeSession([FakeResp(200, text=SIGNIN_BODY), FakeResp(200)] + loop)
    auth = _authenticator(
        limiter, session, legacy_session_ping=False, max_redirect_hops=3
    )
    with pytest.raises(TooManyRedirectsError):
        auth.authenticate(credentials)
    # the first GET plus three followed hops
    assert len(session.calls) == 2 + 4


def test_redirect_back_to_signin_fails(limiter, credentials):
    session = FakeSession(
        [
            FakeResp(200, text=SIGNIN_BODY),
            FakeResp(200),
            FakeResp(302, headers={"Location": GARMIN_SSO_SIGNIN_URL}),
        ]
    )
    auth = _authenticator(limiter, session, legacy_session_ping=False)
    with pytest.raises(AuthError):
        auth.authenticate(credentials)


def test_transport_error_becomes_auth_error(limiter, credentials):
    session = FakeSession([requests.ConnectionError("down")])
    with pytest.raises(AuthError) as excinfo:
        _authenticator(limiter, session).authenticate(credentials)
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


@pytest.mark.parametrize(
    "creds",
    [Credentials(username="", password="pw"), Credentials(username="me", password="")],
)
def test_empty_credentials_rejected(limiter, creds):
    session = FakeSession()
    with pytest.raises(InvalidInputError):
        _authenticator(limiter, session).authenticate(creds)
    assert session.calls == []


def test_password_never_logged(limiter, credentials, caplog):
    session = FakeSession([FakeResp(200, text=SIGNIN_BODY), FakeResp(200)])
    auth = _authenticator(
        limiter, session, follow_app_redirects=False, legacy_session_ping=False
    )
    with caplog.at_level(logging.DEBUG):
        auth.authenticate(credentials)
    assert "s3cret" not in caplog.text
    assert "runner@example.com" not in caplog.text


@pytest.mark.parametrize(
    "response, expected",
    [
        (FakeResp(403), True),
        (FakeResp(401), True),
        (FakeResp(200), False),
        (FakeResp(500), False),
        (FakeResp(200, url=GARMIN_SSO_SIGNIN_URL + "?service=x"), True),
        (FakeResp(302, headers={"Location": GARMIN_SSO_SIGNIN_URL}), True),
        (
            FakeResp(
                200,
                url="https://connect.garmin.com/modern/",
                history=[FakeResp(302, headers={"Location": GARMIN_SSO_SIGNIN_URL})],
            ),
            True,
        ),
    ],
)
def test_is_session_expired(limiter, response, expected):
    auth = _authenticator(limiter, FakeSession())
    assert auth.is_session_expired(response) is expected
