"""Push dispatcher coordinating token checks and concurrent delivery.

This module implements the PushDispatcher class that drives one push: it
makes sure the provider holds a valid token, builds the wire payload once,
fans it out to every destination through a bounded pool of worker tasks,
and writes exactly one result per destination to a ResultStream that is
closed once every worker has finished.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterable, AsyncIterator, Callable
from dataclasses import dataclass
from uuid import uuid4

from push_relay.core.exceptions import (
    BadNotificationError,
    DeliveryError,
    DeliveryTimeoutError,
    PushError,
    TokenRequestError,
)
from push_relay.core.results import ResultStream
from push_relay.types import (
    Destination,
    DestinationSource,
    Notification,
    Provider,
    PushAdapter,
    PushResult,
    ResultKind,
    TokenState,
)
from push_relay.utils.logging import (
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    log_with_context,
    set_correlation_id,
)
from push_relay.utils.sanitization import sanitize_exception

__all__ = ["PushDispatcher"]

type CorrelationIDFactory = Callable[[], str]


@dataclass(slots=True)
class _BatchStats:
    """Counters for one push, reported when the batch completes."""

    delivered: int = 0
    failed: int = 0
    drained: int = 0


class PushDispatcher:
    """Dispatch one notification to a batch of destinations of one provider.

    Args:
        adapter: Gateway-specific token, payload, and send operations
        max_concurrency: Number of worker tasks sending in parallel. ``None``
            starts one task per destination as destinations arrive.
        token_timeout_seconds: Deadline for the token check
        send_timeout_seconds: Deadline for each destination's send
        correlation_id_factory: Generates the correlation ID of a push when
            the caller has not set one
        logger_obj: Logger override
    """

    def __init__(
        self,
        adapter: PushAdapter,
        *,
        max_concurrency: int | None = 16,
        token_timeout_seconds: float = 30.0,
        send_timeout_seconds: float = 15.0,
        correlation_id_factory: CorrelationIDFactory | None = None,
        logger_obj: logging.Logger | None = None,
    ) -> None:
        if max_concurrency is not None and max_concurrency < 1:
            msg = "max_concurrency must be at least 1"
            raise ValueError(msg)
        if token_timeout_seconds <= 0:
            msg = "token_timeout_seconds must be greater than zero"
            raise ValueError(msg)
        if send_timeout_seconds <= 0:
            msg = "send_timeout_seconds must be greater than zero"
            raise ValueError(msg)

        self._adapter: PushAdapter = adapter
        self._max_concurrency: int | None = max_concurrency
        self._token_timeout_seconds: float = token_timeout_seconds
        self._send_timeout_seconds: float = send_timeout_seconds
        self._correlation_id_factory: CorrelationIDFactory = (
            correlation_id_factory or (lambda: uuid4().hex)
        )
        self._logger: logging.Logger = logger_obj or get_logger(__name__)

    @property
    def max_concurrency(self) -> int | None:
        return self._max_concurrency

    async def dispatch(
        self,
        provider: Provider,
        destinations: DestinationSource,
        notification: Notification | None,
    ) -> tuple[PushResult, ...]:
        """Run :meth:`push` and collect its results in completion order."""
        sink = ResultStream()
        async with asyncio.TaskGroup() as task_group:
            _ = task_group.create_task(self.push(provider, destinations, sink, notification))
            results = await sink.collect()
        return results

    async def push(
        self,
        provider: Provider,
        destinations: DestinationSource,
        sink: ResultStream,
        notification: Notification | None,
    ) -> None:
        """Push ``notification`` to every destination and close ``sink``.

        Provider-level failures (token, notification) produce a single result
        without a destination and the remaining destinations are consumed
        without being sent to. A refreshed token produces a
        ``PROVIDER_UPDATED`` result and delivery continues. Otherwise each
        destination produces exactly one result. ``sink`` is closed exactly
        once, after every result has been written, including when the push
        is cancelled.
        """
        owns_correlation_id = get_correlation_id() is None
        if owns_correlation_id:
            set_correlation_id(self._correlation_id_factory())

        stats = _BatchStats()
        start = time.perf_counter()
        try:
            log_with_context(
                self._logger,
                logging.INFO,
                "Dispatching push",
                extra={"provider_name": provider.name, "max_concurrency": self._max_concurrency},
            )
            payload = await self._prepare(provider, sink, notification)
            if payload is None:
                stats.drained = await _drain(destinations)
                log_with_context(
                    self._logger,
                    logging.WARNING,
                    "Push aborted before delivery",
                    extra={"provider_name": provider.name, "destinations_skipped": stats.drained},
                )
                return

            await self._fan_out(provider, destinations, sink, notification, payload, stats)
            log_with_context(
                self._logger,
                logging.INFO,
                "Push completed",
                extra={
                    "provider_name": provider.name,
                    "delivered": stats.delivered,
                    "failed": stats.failed,
                    "elapsed_ms": (time.perf_counter() - start) * 1000.0,
                },
            )
        finally:
            sink.close()
            if owns_correlation_id:
                clear_correlation_id()

    async def _prepare(
        self,
        provider: Provider,
        sink: ResultStream,
        notification: Notification | None,
    ) -> bytes | None:
        """Check the token and build the payload; return None when the batch must abort."""
        try:
            async with asyncio.timeout(self._token_timeout_seconds):
                state = await self._adapter.ensure_token(provider)
        except PushError as exc:
            await self._emit_provider_failure(provider, sink, notification, exc)
            return None
        except TimeoutError:
            error = TokenRequestError(
                provider,
                f"token request timed out after {self._token_timeout_seconds:.2f}s",
            )
            await self._emit_provider_failure(provider, sink, notification, error)
            return None
        except Exception as exc:
            error = TokenRequestError(provider, sanitize_exception(exc))
            await self._emit_provider_failure(provider, sink, notification, error)
            return None

        if state is TokenState.REFRESHED:
            log_with_context(
                self._logger,
                logging.INFO,
                "Provider credential refreshed",
                extra={"provider_name": provider.name},
            )
            await sink.put(
                PushResult(
                    kind=ResultKind.PROVIDER_UPDATED,
                    provider=provider,
                    notification=notification,
                )
            )

        try:
            return self._adapter.build_payload(notification)
        except PushError as exc:
            await self._emit_provider_failure(provider, sink, notification, exc)
        except Exception as exc:
            error = BadNotificationError(sanitize_exception(exc))
            await self._emit_provider_failure(provider, sink, notification, error)
        return None

    async def _fan_out(
        self,
        provider: Provider,
        destinations: DestinationSource,
        sink: ResultStream,
        notification: Notification | None,
        payload: bytes,
        stats: _BatchStats,
    ) -> None:
        async def _deliver_and_emit(destination: Destination) -> None:
            result = await self._deliver(provider, destination, notification, payload)
            if result.succeeded:
                stats.delivered += 1
            else:
                stats.failed += 1
            await sink.put(result)

        if self._max_concurrency is None:
            async with asyncio.TaskGroup() as task_group:
                async for destination in _iterate(destinations):
                    _ = task_group.create_task(_deliver_and_emit(destination))
            return

        queue: asyncio.Queue[Destination | None] = asyncio.Queue(maxsize=self._max_concurrency)

        async def _worker(worker_name: str) -> None:
            self._logger.debug("Worker %s started", worker_name)
            while (destination := await queue.get()) is not None:
                await _deliver_and_emit(destination)
            self._logger.debug("Worker %s stopped", worker_name)

        async with asyncio.TaskGroup() as task_group:
            for index in range(self._max_concurrency):
                _ = task_group.create_task(_worker(f"worker-{index}"))
            async for destination in _iterate(destinations):
                await queue.put(destination)
            for _index in range(self._max_concurrency):
                await queue.put(None)

    async def _deliver(
        self,
        provider: Provider,
        destination: Destination,
        notification: Notification | None,
        payload: bytes,
    ) -> PushResult:
        start = time.perf_counter()
        error: PushError
        try:
            async with asyncio.timeout(self._send_timeout_seconds):
                message_id = await self._adapter.send(provider, destination, payload)
        except asyncio.CancelledError:
            raise
        except TimeoutError:
            error = DeliveryTimeoutError(destination, timeout_seconds=self._send_timeout_seconds)
        except PushError as exc:
            error = exc
        except Exception as exc:
            error = DeliveryError(destination, sanitize_exception(exc))
        else:
            log_with_context(
                self._logger,
                logging.INFO,
                "Push delivered",
                extra={
                    "provider_name": provider.name,
                    "subscriber": destination.subscriber,
                    "message_id": message_id,
                    "delivery_time_ms": (time.perf_counter() - start) * 1000.0,
                },
            )
            return PushResult(
                kind=ResultKind.DELIVERED,
                provider=provider,
                notification=notification,
                destination=destination,
                message_id=message_id,
            )

        log_with_context(
            self._logger,
            logging.ERROR,
            "Push delivery failed",
            extra={
                "provider_name": provider.name,
                "subscriber": destination.subscriber,
                "error_message": str(error),
                "exception_type": type(error).__name__,
                "delivery_time_ms": (time.perf_counter() - start) * 1000.0,
            },
        )
        return PushResult(
            kind=ResultKind.FAILED,
            provider=provider,
            notification=notification,
            destination=destination,
            error=error,
        )

    async def _emit_provider_failure(
        self,
        provider: Provider,
        sink: ResultStream,
        notification: Notification | None,
        error: PushError,
    ) -> None:
        log_with_context(
            self._logger,
            logging.ERROR,
            "Provider-level push failure",
            extra={
                "provider_name": provider.name,
                "error_message": str(error),
                "exception_type": type(error).__name__,
            },
        )
        await sink.put(
            PushResult(
                kind=ResultKind.FAILED,
                provider=provider,
                notification=notification,
                error=error,
            )
        )


async def _iterate(destinations: DestinationSource) -> AsyncIterator[Destination]:
    """Iterate a sync or async destination source."""
    if isinstance(destinations, AsyncIterable):
        async for destination in destinations:
            yield destination
    else:
        for destination in destinations:
            yield destination


async def _drain(destinations: DestinationSource) -> int:
    """Consume every remaining destination without processing it."""
    count = 0
    async for _destination in _iterate(destinations):
        count += 1
    return count
