import asyncio

import pytest

from chat_gateway.dispatcher import Dispatcher, status_for
from chat_gateway.model_catalog import ModelCatalog
from chat_gateway.models import BackendKind, ErrorKind, Failure, Success


class RecordingAdapter:
    def __init__(self, result=None, error: Exception | None = None):
        self.result = result or Success("ok")
        self.error = error
        self.requests = []

    async def generate(self, request, timeout=None):
        self.requests.append((request, timeout))
        if self.error is not None:
            raise self.error
        return self.result


def _dispatcher(models_dir, **adapters):
    catalog = ModelCatalog(str(models_dir))
    catalog.refresh_local()
    kinds = {
        "remote": BackendKind.REMOTE_API,
        "daemon": BackendKind.DAEMON,
        "process": BackendKind.PROCESS,
    }
    return Dispatcher(catalog, {kinds[k]: v for k, v in adapters.items()})


def test_unknown_process_model_never_reaches_engine(models_dir):
    process = RecordingAdapter()
    dispatcher = _dispatcher(models_dir, process=process)

    result = asyncio.run(dispatcher.handle(BackendKind.PROCESS, "missing.gguf", "hi"))

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.MODEL_NOT_FOUND
    assert "missing.gguf" in result.detail
    assert process.requests == []


def test_process_request_carries_resolved_path(models_dir):
    process = RecordingAdapter()
    dispatcher = _dispatcher(models_dir, process=process)

    result = asyncio.run(dispatcher.handle(BackendKind.PROCESS, "tiny.gguf", "hi", timeout=12.0))

    assert result == Success("ok")
    request, timeout = process.requests[0]
    assert request.locator == str(models_dir / "tiny.gguf")
    assert request.model_name == "tiny.gguf"
    assert timeout == 12.0


def test_new_model_file_is_picked_up_by_rescan(models_dir):
    process = RecordingAdapter()
    dispatcher = _dispatcher(models_dir, process=process)
    (models_dir / "fresh.gguf").write_bytes(b"x")

    result = asyncio.run(dispatcher.handle(BackendKind.PROCESS, "fresh.gguf", "hi"))

    assert result == Success("ok")
    assert process.requests[0][0].locator == str(models_dir / "fresh.gguf")


def test_daemon_identifier_passes_through_when_not_catalogued(models_dir):
    daemon = RecordingAdapter()
    dispatcher = _dispatcher(models_dir, daemon=daemon)

    asyncio.run(dispatcher.handle(BackendKind.DAEMON, "llama3:8b", "hi"))

    assert daemon.requests[0][0].locator == "llama3:8b"


def test_remote_kind_skips_catalog(models_dir):
    remote = RecordingAdapter(Success("remote text"))
    dispatcher = _dispatcher(models_dir, remote=remote)

    result = asyncio.run(dispatcher.handle(BackendKind.REMOTE_API, "", "hi"))

    assert result == Success("remote text")
    assert remote.requests[0][0].locator is None


def test_adapter_exception_becomes_typed_failure(models_dir):
    dispatcher = _dispatcher(models_dir, process=RecordingAdapter(error=RuntimeError("boom")))

    result = asyncio.run(dispatcher.handle(BackendKind.PROCESS, "tiny.gguf", "hi"))

    assert isinstance(result, Failure)
    assert result.kind is ErrorKind.PROCESS_FAILURE
    assert "boom" in result.detail


def test_missing_adapter_is_backend_unavailable(models_dir):
    dispatcher = _dispatcher(models_dir)

    result = asyncio.run(dispatcher.handle(BackendKind.DAEMON, "x", "hi"))

    assert result.kind is ErrorKind.BACKEND_UNAVAILABLE


@pytest.mark.parametrize(
    "kind, status",
    [
        (ErrorKind.BACKEND_UNAVAILABLE, 503),
        (ErrorKind.MODEL_NOT_FOUND, 404),
        (ErrorKind.REMOTE_ERROR, 502),
        (ErrorKind.PARSE_ERROR, 502),
        (ErrorKind.PROCESS_TIMEOUT, 504),
        (ErrorKind.PROCESS_FAILURE, 500),
        (ErrorKind.GPU_ERROR, 500),
    ],
)
def test_status_for_every_error_kind(kind, status):
    code, hint = status_for(Failure(kind, "detail"))
    assert code == status
    assert hint


def test_status_for_prefers_adapter_hint():
    assert status_for(Failure(ErrorKind.GPU_ERROR, "d", "use -ngl 0")) == (500, "use -ngl 0")
