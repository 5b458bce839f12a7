import httpx
import pytest

from basic_api_client import ApiClient, AsyncHttpxTransport, AsyncRawResponse, ClientPolicy, HttpxTransport, RawResponse
from basic_api_client import transport as transport_module

BASE_URL = "http://api.test"


class Recorder:
    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def __call__(self, request):
        self.calls.append(request)
        return self.handler(request)


class ScriptedTransport:
    """Transport stub replaying a list of exceptions and responses."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def execute(self, request, policy):
        self.calls.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome()


class AsyncScriptedTransport(ScriptedTransport):
    async def execute(self, request, policy):
        return ScriptedTransport.execute(self, request, policy)


class RequestsSessionStub:
    def __init__(self, responses, calls):
        self.responses = list(responses)
        self.calls = calls
        self.cookies = None
        self.verify = True
        self.closed = False

    def request(self, method, url, data=None, headers=None, timeout=None, allow_redirects=True, stream=False):
        self.calls.append(
            {
                "method": method,
                "url": url,
                "content": data,
                "headers": headers,
                "timeout": timeout,
                "allow_redirects": allow_redirects,
            }
        )
        outcome = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self):
        self.closed = True


class RequestsResponseStub:
    def __init__(self, status_code, content=b"", headers=None, url="http://api.test/"):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.url = url
        self.closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def make_policy():
    def _factory(**overrides):
        overrides.setdefault("base_url", BASE_URL)
        return ClientPolicy(**overrides)

    return _factory


@pytest.fixture
def mock_api(make_policy):
    """Build a client whose sync and async transports answer through ``handler``."""

    def _install(handler, token=None, **policy_overrides):
        recorder = Recorder(handler)
        client = ApiClient(
            make_policy(**policy_overrides),
            token=token,
            transport=HttpxTransport(transport=httpx.MockTransport(recorder)),
            async_transport=AsyncHttpxTransport(transport=httpx.MockTransport(recorder)),
        )
        return client, recorder.calls

    return _install


@pytest.fixture
def client_kwargs_spy(monkeypatch):
    """Record keyword arguments passed to ``httpx.Client``/``httpx.AsyncClient``."""

    seen = []
    real_client = httpx.Client
    real_async_client = httpx.AsyncClient

    def client_factory(*args, **kwargs):
        seen.append(kwargs)
        return real_client(*args, **kwargs)

    def async_client_factory(*args, **kwargs):
        seen.append(kwargs)
        return real_async_client(*args, **kwargs)

    monkeypatch.setattr(transport_module.httpx, "Client", client_factory)
    monkeypatch.setattr(transport_module.httpx, "AsyncClient", async_client_factory)
    return seen


@pytest.fixture
def mock_requests_session(monkeypatch):
    def _install(*responses):
        if transport_module.requests is None:
            pytest.skip("requests is not installed")
        calls = []
        sessions = []

        def session_factory(*_args, **_kwargs):
            session = RequestsSessionStub(responses, calls)
            sessions.append(session)
            return session

        monkeypatch.setattr(transport_module.requests, "Session", session_factory)
        return calls, sessions

    return _install


@pytest.fixture
def raw_response_factory():
    """Return a zero-argument factory producing a fresh RawResponse and its close log."""

    def _factory(status_code, body=b"", headers=()):
        closes = []

        def _make():
            return RawResponse(status_code, headers, lambda: body, lambda: closes.append(True))

        return _make, closes

    return _factory


@pytest.fixture
def async_raw_response_factory():
    def _factory(status_code, body=b"", headers=()):
        closes = []

        async def _read():
            return body

        async def _close():
            closes.append(True)

        def _make():
            return AsyncRawResponse(status_code, headers, _read, _close)

        return _make, closes

    return _factory


@pytest.fixture
def scripted_client(make_policy):
    def _install(*outcomes, **policy_overrides):
        sync_transport = ScriptedTransport(outcomes)
        async_transport = AsyncScriptedTransport(outcomes)
        client = ApiClient(
            make_policy(**policy_overrides),
            transport=sync_transport,
            async_transport=async_transport,
        )
        return client, sync_transport, async_transport

    return _install


@pytest.fixture
def requests_response():
    return RequestsResponseStub
