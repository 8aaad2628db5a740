"""End-to-end tests of the ADM push service over a fake transport."""

from __future__ import annotations

import json

import pytest

from push_relay.core.config import DispatchConfig
from push_relay.core.exceptions import (
    AuthRejectedError,
    DestinationConfigError,
    EmptyNotificationError,
    GatewayRejectedError,
    ProviderConfigError,
)
from push_relay.core.results import ResultStream
from push_relay.plugins.adm import ADMPushService, create_service, install
from push_relay.plugins.adm.token import ADM_TOKEN_URL
from push_relay.plugins.registry import PushServiceRegistry
from push_relay.types import Notification, PushResult, PushService, Response, ResultKind
from push_relay.utils.sanitization import sanitize_text
from tests.fixtures.push_fakes import (
    FakeHTTPClient,
    GatewayStub,
    RecordedRequest,
    make_destination,
    make_notification,
    make_provider,
)

NOW = 1_700_000_000


def _service(http_client: FakeHTTPClient) -> ADMPushService:
    return ADMPushService(http_client=http_client, max_concurrency=4, clock=lambda: float(NOW))


def _sends(http_client: FakeHTTPClient) -> list[RecordedRequest]:
    return [request for request in http_client.requests if request.url != ADM_TOKEN_URL]


class TestSettings:
    def test_build_provider(self, http_client: FakeHTTPClient) -> None:
        provider = _service(http_client).build_provider(
            {"service": "myapp", "clientid": "client-1", "clientsecret": "s3cr3t"}
        )

        assert provider.name == "adm:myapp"
        assert provider.client_id == "client-1"
        assert provider.credential.token is None

    def test_build_provider_missing_secret(self, http_client: FakeHTTPClient) -> None:
        with pytest.raises(ProviderConfigError, match="NoClientSecret"):
            _ = _service(http_client).build_provider({"service": "myapp", "clientid": "client-1"})

    def test_build_destination(self, http_client: FakeHTTPClient) -> None:
        destination = _service(http_client).build_destination(
            {"service": "myapp", "subscriber": "alice", "regid": "regid-9"}
        )

        assert destination.registration_id == "regid-9"
        assert destination.subscriber == "alice"

    def test_build_destination_missing_regid(self, http_client: FakeHTTPClient) -> None:
        with pytest.raises(DestinationConfigError, match="NoRegId"):
            _ = _service(http_client).build_destination({"service": "myapp", "subscriber": "alice"})

    def test_build_payload(self, http_client: FakeHTTPClient) -> None:
        payload = _service(http_client).build_payload(Notification(data={"msg": "hi", "msggroup": "g"}))

        assert json.loads(payload) == {"data": {"msg": "hi"}, "consolidationKey": "g"}

    def test_build_payload_empty(self, http_client: FakeHTTPClient) -> None:
        with pytest.raises(EmptyNotificationError):
            _ = _service(http_client).build_payload(Notification())

    def test_satisfies_push_service_protocol(self, http_client: FakeHTTPClient) -> None:
        service = _service(http_client)

        assert isinstance(service, PushService)
        assert service.name == "adm"


class TestPush:
    async def test_first_push_refreshes_then_delivers(self) -> None:
        http_client = FakeHTTPClient(GatewayStub())
        service = _service(http_client)
        provider = make_provider()
        destinations = [make_destination(index) for index in range(3)]

        results = await service.dispatcher.dispatch(provider, destinations, make_notification())

        assert results[0].kind is ResultKind.PROVIDER_UPDATED
        delivered = {result.message_id for result in results if result.kind is ResultKind.DELIVERED}
        assert delivered == {"req-regid-0", "req-regid-1", "req-regid-2"}
        assert http_client.requests[0].url == ADM_TOKEN_URL
        assert all(request.headers["Authorization"] == "Bearer Atza|token-1" for request in _sends(http_client))

    async def test_second_push_reuses_token(self) -> None:
        http_client = FakeHTTPClient(GatewayStub())
        service = _service(http_client)
        provider = make_provider()

        _ = await service.dispatcher.dispatch(provider, [make_destination(0)], make_notification())
        results = await service.dispatcher.dispatch(provider, [make_destination(1)], make_notification())

        assert [result.kind for result in results] == [ResultKind.DELIVERED]
        token_requests = [request for request in http_client.requests if request.url == ADM_TOKEN_URL]
        assert len(token_requests) == 1

    async def test_rejected_destination_isolated(self) -> None:
        http_client = FakeHTTPClient(GatewayStub(rejected=frozenset({"regid-1"})))
        service = _service(http_client)
        provider = make_provider(token="Atza|cached", expires_at=NOW + 600)

        results = await service.dispatcher.dispatch(
            provider,
            [make_destination(index) for index in range(3)],
            make_notification(),
        )

        failed = [result for result in results if result.failed]
        assert len(results) == 3
        assert len(failed) == 1
        assert failed[0].destination == make_destination(1)
        assert isinstance(failed[0].error, GatewayRejectedError)

    async def test_rejected_credentials_abort_batch(self) -> None:
        http_client = FakeHTTPClient(GatewayStub(token_status=401))
        service = _service(http_client)

        results = await service.dispatcher.dispatch(
            make_provider(),
            [make_destination(index) for index in range(3)],
            make_notification(),
        )

        assert len(results) == 1
        assert results[0].is_provider_level
        assert isinstance(results[0].error, AuthRejectedError)
        assert _sends(http_client) == []

    async def test_unavailable_token_endpoint_aborts_batch_as_rejection(self) -> None:
        async def handler(request: RecordedRequest) -> Response:
            _ = request
            return Response(status=503, body=b"<html>unavailable</html>", headers={})

        http_client = FakeHTTPClient(handler)
        service = _service(http_client)

        results = await service.dispatcher.dispatch(
            make_provider(),
            [make_destination(index) for index in range(2)],
            make_notification(),
        )

        assert len(results) == 1
        assert results[0].is_provider_level
        error = results[0].error
        assert isinstance(error, AuthRejectedError)
        assert error.status == 503
        assert _sends(http_client) == []

    async def test_push_writes_to_caller_sink(self) -> None:
        http_client = FakeHTTPClient(GatewayStub())
        service = _service(http_client)

        sink = ResultStream()
        await service.push(make_provider(), [make_destination()], sink, make_notification(msg="hi", ttl="60"))
        results: list[PushResult] = list(await sink.collect())

        assert sink.closed
        assert [result.kind for result in results] == [ResultKind.PROVIDER_UPDATED, ResultKind.DELIVERED]
        assert json.loads(_sends(http_client)[0].body) == {"data": {"msg": "hi"}, "expiresAfter": 60}


class TestInstall:
    def test_install_registers_service(self, http_client: FakeHTTPClient) -> None:
        registry: PushServiceRegistry[PushService] = PushServiceRegistry()

        service = install(registry, http_client, DispatchConfig(max_concurrency=None, send_timeout_seconds=5))

        assert registry.require("adm") is service
        assert service.dispatcher.max_concurrency is None
        assert service.client.request_timeout == 5.0

    def test_access_tokens_redacted(self) -> None:
        assert sanitize_text("sent Atza|IwEBIA-x_y+z/= ok") == "sent <REDACTED> ok"

    def test_create_service_rejects_bad_limits(self, http_client: FakeHTTPClient) -> None:
        with pytest.raises(ValueError, match="max_concurrency"):
            _ = create_service(http_client=http_client, max_concurrency=0)
