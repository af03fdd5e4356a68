"""Tests for mycqu.py: OAuth code/token grant and bearer requests."""

import asyncio
from urllib.parse import parse_qs

import httpx
import pytest
from conftest import ENDPOINTS, json_body, page, redirect, status

from cqu_sso.access_info import MyCQUAccessInfo
from cqu_sso.config import Service
from cqu_sso.exceptions import AccessError, NotAccessError, NotLoginError, TransportError
from cqu_sso.mycqu import access_mycqu, mycqu_request

LOGIN_URL = ENDPOINTS.sso_login_url
SERVICE_URL = ENDPOINTS.mycqu_service_url
AUTHORIZE_URL = ENDPOINTS.mycqu_authorize_url
TOKEN_URL = ENDPOINTS.mycqu_token_url
CODE_LOCATION = f"{ENDPOINTS.mycqu_token_index_url}?code=ZbfCVZ&state="
SCORE_API = f"{ENDPOINTS.mycqu_root}/api/sam/score/student/score"


def grant_routes(site, token_response=None, authorize_response=None):
    site.add("GET", LOGIN_URL, redirect(f"{SERVICE_URL}?ticket=ST-7"))
    site.add("GET", SERVICE_URL, status(200))
    site.add("GET", AUTHORIZE_URL, authorize_response or redirect(CODE_LOCATION))
    site.add("POST", TOKEN_URL, token_response or json_body({"access_token": "tok-1", "token_type": "bearer"}))


class TestAccessMycqu:
    def test_grant(self, site, make_session):
        grant_routes(site)
        session = make_session(logged_in=True)

        info = asyncio.run(access_mycqu(session))

        assert info == MyCQUAccessInfo(auth_header="tok-1")
        assert session.access_infos.services() == [Service.MYCQU]
        form = {k: v[0] for k, v in parse_qs(site.calls("POST", TOKEN_URL)[0].content.decode()).items()}
        assert form["code"] == "ZbfCVZ"
        assert form["grant_type"] == "authorization_code"
        assert form["client_id"] == "enroll-prod"
        assert form["redirect_uri"] == ENDPOINTS.mycqu_token_index_url

    def test_requires_login(self, site, make_session):
        session = make_session()

        with pytest.raises(NotLoginError):
            asyncio.run(access_mycqu(session))
        assert site.requests == []

    def test_no_auth_code(self, site, make_session):
        grant_routes(site, authorize_response=page("<html>login</html>"))
        session = make_session(logged_in=True)

        with pytest.raises(AccessError, match="Get Auth Code Error"):
            asyncio.run(access_mycqu(session))
        assert site.calls("POST", TOKEN_URL) == []

    @pytest.mark.parametrize(
        "token_response",
        [
            json_body({"error": "invalid_grant"}),
            json_body({"access_token": 12345}),
            json_body(["tok-1"]),
            page("<html>bad gateway</html>", status=502),
        ],
    )
    def test_bad_token_response(self, site, make_session, token_response):
        grant_routes(site, token_response)
        session = make_session(logged_in=True)

        with pytest.raises(AccessError, match="Get Access Token Error"):
            asyncio.run(access_mycqu(session))
        assert Service.MYCQU not in session.access_infos

    def test_failed_regrant_keeps_token(self, site, make_session):
        grant_routes(site, json_body({}))
        session = make_session(logged_in=True)
        session.access_infos.set(MyCQUAccessInfo(auth_header="still-valid"))

        with pytest.raises(AccessError):
            asyncio.run(access_mycqu(session))
        assert session.access_infos.get(Service.MYCQU) == MyCQUAccessInfo(auth_header="still-valid")

    def test_network_failure_keeps_token(self, site, make_session):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        site.add("GET", LOGIN_URL, refuse)
        session = make_session(logged_in=True)
        session.access_infos.set(MyCQUAccessInfo(auth_header="still-valid"))

        with pytest.raises(TransportError):
            asyncio.run(access_mycqu(session))
        assert session.access_infos.get(Service.MYCQU) == MyCQUAccessInfo(auth_header="still-valid")

    def test_regrant_replaces_token(self, site, make_session):
        grant_routes(site)
        session = make_session(logged_in=True)
        session.access_infos.set(MyCQUAccessInfo(auth_header="old"))

        asyncio.run(access_mycqu(session))
        assert session.access_infos.get(Service.MYCQU) == MyCQUAccessInfo(auth_header="tok-1")


class TestMycquRequest:
    @staticmethod
    def build(session):
        return session.build_request("GET", SCORE_API)

    def test_bearer_attached(self, site, make_session):
        site.add("GET", SCORE_API, json_body({"status": "success"}))
        session = make_session(logged_in=True)
        session.access_infos.set(MyCQUAccessInfo(auth_header="tok-1"))

        resp = asyncio.run(mycqu_request(session, self.build))

        assert resp.json() == {"status": "success"}
        assert site.requests[0].headers["authorization"] == "Bearer tok-1"

    def test_rejected_token(self, site, make_session):
        site.add("GET", SCORE_API, status(401))
        session = make_session(logged_in=True)
        session.access_infos.set(MyCQUAccessInfo(auth_header="tok-1"))

        with pytest.raises(NotAccessError):
            asyncio.run(mycqu_request(session, self.build))
        assert len(site.requests) == 1

    def test_without_grant(self, site, make_session):
        session = make_session(logged_in=True)

        with pytest.raises(NotAccessError):
            asyncio.run(mycqu_request(session, self.build))
        assert site.requests == []

    def test_after_grant(self, site, make_session):
        grant_routes(site)
        site.add("GET", SCORE_API, lambda r: httpx.Response(200, json={"auth": r.headers["authorization"]}))
        session = make_session(logged_in=True)

        async def run():
            await access_mycqu(session)
            return await mycqu_request(session, self.build)

        assert asyncio.run(run()).json() == {"auth": "Bearer tok-1"}
