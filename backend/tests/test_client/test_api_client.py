"""
Unit tests for the HTTP client

Requests go through httpx.MockTransport; no server is started.

Author: Ammex Dev Team
Date: 2025-03-24
"""
import json

import httpx
import pytest

from ammex.client.api_client import ApiClient, ApiError, TokenStore, resolve_base_url


def make_client(handler, **kwargs):
    delays = []
    client = ApiClient(
        base_url='http://api.test/api',
        transport=httpx.MockTransport(handler),
        sleep=delays.append,
        **kwargs
    )
    return client, delays


class TestResolveBaseUrl:

    def test_explicit_value_wins(self, monkeypatch):
        monkeypatch.setenv('AMMEX_API_BASE_URL', 'http://env.test/api')

        assert resolve_base_url('https://shop.test/api/') == 'https://shop.test/api'

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv('AMMEX_API_BASE_URL', 'http://env.test/api')

        assert resolve_base_url() == 'http://env.test/api'

    def test_default(self, monkeypatch):
        monkeypatch.delenv('AMMEX_API_BASE_URL', raising=False)

        assert resolve_base_url() == 'http://localhost:5000/api'

    @pytest.mark.parametrize("url", ['localhost:5000', 'ftp://files.test', 'http://'])
    def test_invalid(self, url):
        with pytest.raises(ValueError):
            resolve_base_url(url)


class TestTokenStore:

    def test_file_backed_token_survives_restart(self, tmp_path):
        path = tmp_path / 'session' / 'token'

        TokenStore(str(path)).set('abc')

        assert TokenStore(str(path)).get() == 'abc'

    def test_clear_removes_file(self, tmp_path):
        path = tmp_path / 'token'
        store = TokenStore(str(path))
        store.set('abc')

        store.clear()

        assert store.get() is None
        assert not path.exists()


class TestCall:

    def test_success_returns_body(self):
        client, _ = make_client(lambda request: httpx.Response(200, json={'success': True, 'data': [1]}))

        assert client.get('/products/') == {'success': True, 'data': [1]}

    def test_requests_are_prefixed_with_base_path(self):
        seen = []

        def handler(request):
            seen.append(request.url.path)
            return httpx.Response(200, json={})

        client, _ = make_client(handler)
        client.get('/cart/100')

        assert seen == ['/api/cart/100']

    def test_client_error_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(400, json={
                'success': False, 'message': 'Validation failed',
                'errors': [{'field': 'quantity', 'message': 'too small'}],
            })

        client, delays = make_client(handler)

        with pytest.raises(ApiError) as exc_info:
            client.post('/cart/100/items', {'itemId': 1, 'quantity': 0})

        assert len(calls) == 1
        assert delays == []
        assert exc_info.value.status == 400
        assert exc_info.value.message == 'Validation failed'
        assert exc_info.value.errors[0]['field'] == 'quantity'

    def test_server_error_retried_with_growing_delay(self):
        responses = iter([
            httpx.Response(503, text='unavailable'),
            httpx.Response(502, text='bad gateway'),
            httpx.Response(200, json={'success': True}),
        ])
        client, delays = make_client(lambda request: next(responses), retry_delay=0.5)

        assert client.get('/orders/my') == {'success': True}
        assert delays == [0.5, 1.0]

    def test_gives_up_after_retries(self):
        client, delays = make_client(lambda request: httpx.Response(500, text='oops'), retries=1)

        with pytest.raises(ApiError) as exc_info:
            client.get('/orders/my')

        assert exc_info.value.status == 500
        assert exc_info.value.message == 'HTTP error! status: 500'
        assert delays == [1.0]

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        client, delays = make_client(handler, retries=2)

        with pytest.raises(ApiError) as exc_info:
            client.get('/health')

        assert exc_info.value.status is None
        assert 'connection refused' in exc_info.value.message
        assert len(delays) == 2

    def test_health(self):
        client, _ = make_client(lambda request: httpx.Response(200, json={'status': 'healthy'}))
        degraded, _ = make_client(lambda request: httpx.Response(200, json={'status': 'degraded'}))

        assert client.health() is True
        assert degraded.health() is False


class TestSession:

    def test_login_stores_token_for_later_requests(self):
        auth_headers = []

        def handler(request):
            auth_headers.append(request.headers.get('Authorization'))
            if request.url.path.endswith('/auth/login'):
                assert json.loads(request.content) == {'email': 'cora@acme.com', 'password': 'secret1'}
                return httpx.Response(200, json={'success': True, 'token': 'jwt-1', 'user': {'id': 10}})
            return httpx.Response(200, json={'success': True, 'data': {'id': 10}})

        client, _ = make_client(handler)

        user = client.login(' cora@acme.com ', 'secret1')
        me = client.me()

        assert user == {'id': 10}
        assert me == {'id': 10}
        assert auth_headers == [None, 'Bearer jwt-1']

    def test_logout_drops_token(self):
        client, _ = make_client(lambda request: httpx.Response(200, json={}))
        client.token_store.set('jwt-1')

        client.logout()

        assert client.token_store.get() is None

    def test_sync_cart_payload(self):
        bodies = []

        def handler(request):
            bodies.append((request.method, request.url.path, json.loads(request.content)))
            return httpx.Response(200, json={'success': True, 'data': {'items': []}, 'adjustments': []})

        client, _ = make_client(handler)
        client.sync_cart(100, [{'itemId': 1, 'quantity': 2}])

        assert bodies == [('PUT', '/api/cart/100/sync', {'items': [{'itemId': 1, 'quantity': 2}]})]
