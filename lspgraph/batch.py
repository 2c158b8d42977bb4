"""Batched dispatch of service commands with chunked retry."""

from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable

from .client import ServiceClient
from .protocol import Command, MalformedResponseError, Response, decode_response


logger = logging.getLogger(__name__)

Callback = Callable[[Response], None]


@dataclass
class _Pending:
    command: Command
    future: Future
    callback: Callback | None = None


class BatchProcessor:
    """Buffers commands and sends them to the service in bulk.

    Each queued command gets a future that resolves with its decoded
    response. When a bulk request fails, the same batch is resent in
    fixed-size chunks; chunks that fail again are dropped and their futures
    cancelled. A null or undecodable answer only cancels its own future.
    """

    def __init__(
        self,
        client: ServiceClient,
        max_batch_size: int = 1000,
        retry_chunk_size: int = 100,
    ) -> None:
        self.client = client
        self.max_batch_size = max_batch_size
        self.retry_chunk_size = retry_chunk_size
        self._buffer: list[_Pending] = []
        self._flushing = False

    def __len__(self) -> int:
        return len(self._buffer)

    def submit(self, command: Command) -> Future:
        return self._append(_Pending(command, Future()))

    def enqueue(self, command: Command, callback: Callback) -> Future:
        return self._append(_Pending(command, Future(), callback))

    def flush(self) -> None:
        # Callbacks may enqueue more work; the outer loop drains it.
        if self._flushing:
            return
        self._flushing = True
        try:
            while self._buffer:
                batch, self._buffer = self._buffer, []
                self._send(batch)
        finally:
            self._flushing = False

    def close(self) -> None:
        self.flush()

    def __enter__(self) -> BatchProcessor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _append(self, pending: _Pending) -> Future:
        self._buffer.append(pending)
        if len(self._buffer) > self.max_batch_size:
            self.flush()
        return pending.future

    def _send(self, batch: list[_Pending]) -> None:
        try:
            responses = self._request(batch)
        except Exception as exc:
            logger.warning(
                "Batch of %d commands failed (%s); retrying in chunks of %d",
                len(batch),
                exc,
                self.retry_chunk_size,
            )
            self._retry(batch)
            return
        self._dispatch(batch, responses)

    def _retry(self, batch: list[_Pending]) -> None:
        for start in range(0, len(batch), self.retry_chunk_size):
            chunk = batch[start : start + self.retry_chunk_size]
            try:
                responses = self._request(chunk)
            except Exception as exc:
                logger.error("Dropping %d commands after retry failed: %s", len(chunk), exc)
                for pending in chunk:
                    pending.future.cancel()
                continue
            self._dispatch(chunk, responses)

    def _request(self, batch: list[_Pending]) -> list[Any]:
        responses = self.client.send([pending.command for pending in batch])
        if len(responses) != len(batch):
            raise MalformedResponseError(
                f"Expected {len(batch)} responses, received {len(responses)}"
            )
        return responses

    def _dispatch(self, batch: list[_Pending], responses: list[Any]) -> None:
        for pending, raw in zip(batch, responses):
            if raw is None:
                logger.warning("No response for %s", pending.command.command)
                pending.future.cancel()
                continue
            try:
                response = decode_response(raw)
            except MalformedResponseError as exc:
                logger.warning("Skipping response for %s: %s", pending.command.command, exc)
                pending.future.cancel()
                continue
            pending.future.set_result(response)
            if pending.callback is None:
                continue
            try:
                pending.callback(response)
            except Exception:
                logger.exception("Callback for %s failed", pending.command.command)
