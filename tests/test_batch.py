from __future__ import annotations

from lspgraph.batch import BatchProcessor
from lspgraph.client import ServiceError
from lspgraph.protocol import LocationResponse, document_symbols


class ScriptedClient:
    def __init__(self, fail_over: int | None = None, poison: set[str] | None = None, broken: set[str] | None = None):
        self.fail_over = fail_over
        self.poison = poison or set()
        self.broken = broken or set()
        self.calls: list[int] = []

    def send(self, commands):
        self.calls.append(len(commands))
        if self.fail_over is not None and len(commands) > self.fail_over:
            raise ServiceError(503, "busy")
        paths = [command.arguments[0] for command in commands]
        if any(path in self.broken for path in paths):
            raise ServiceError(500, "broken chunk")
        return [None if path in self.poison else {"locations": []} for path in paths]

    def notify(self, command):
        pass

    def close(self):
        pass


def test_failed_bulk_request_is_retried_in_chunks():
    client = ScriptedClient(fail_over=100, poison={"f42"})
    delivered = []
    processor = BatchProcessor(client, max_batch_size=500, retry_chunk_size=100)

    futures = [
        processor.enqueue(document_symbols(f"f{idx}"), delivered.append) for idx in range(150)
    ]
    processor.flush()

    assert client.calls == [150, 100, 50]
    assert len(delivered) == 149
    assert futures[42].cancelled()
    assert isinstance(futures[0].result(), LocationResponse)


def test_chunk_that_fails_again_is_dropped():
    client = ScriptedClient(fail_over=2, broken={"b3"})
    processor = BatchProcessor(client, max_batch_size=10, retry_chunk_size=2)

    futures = [processor.submit(document_symbols(f"b{idx}")) for idx in range(6)]
    processor.flush()

    assert [future.cancelled() for future in futures] == [False, False, True, True, False, False]


def test_buffer_flushes_when_it_outgrows_the_batch_size():
    client = ScriptedClient()
    processor = BatchProcessor(client, max_batch_size=3)

    for idx in range(4):
        processor.submit(document_symbols(f"a{idx}"))

    assert client.calls == [4]
    assert len(processor) == 0


def test_context_exit_flushes_pending_commands():
    client = ScriptedClient()

    with BatchProcessor(client) as processor:
        future = processor.submit(document_symbols("only"))
        assert not future.done()

    assert future.done()
    assert client.calls == [1]


def test_failing_callback_does_not_stop_delivery():
    client = ScriptedClient()
    processor = BatchProcessor(client)
    delivered = []

    def explode(response):
        raise RuntimeError("callback bug")

    processor.enqueue(document_symbols("a"), explode)
    processor.enqueue(document_symbols("b"), delivered.append)
    processor.flush()

    assert len(delivered) == 1


def test_callbacks_can_enqueue_follow_up_work():
    client = ScriptedClient()
    processor = BatchProcessor(client)
    delivered = []

    def follow_up(response):
        processor.enqueue(document_symbols("second"), delivered.append)

    processor.enqueue(document_symbols("first"), follow_up)
    processor.flush()

    assert client.calls == [1, 1]
    assert len(delivered) == 1


class ResettingClient(ScriptedClient):
    def send(self, commands):
        if len(commands) > 100:
            self.calls.append(len(commands))
            raise ConnectionResetError("peer reset")
        return super().send(commands)


def test_any_bulk_failure_falls_back_to_chunks():
    client = ResettingClient()
    delivered = []
    processor = BatchProcessor(client, max_batch_size=500, retry_chunk_size=100)

    for idx in range(150):
        processor.enqueue(document_symbols(f"r{idx}"), delivered.append)
    processor.flush()

    assert client.calls == [150, 100, 50]
    assert len(delivered) == 150
    assert len(processor) == 0
