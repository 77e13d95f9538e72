import json

import pytest

from conftest import fail_with, reply
from neoai.config import provider_config
from neoai.errors import ErrorKind, PollingTransportError, SubmissionError
from neoai.services.providers import adapter_class, build_adapter
from neoai.services.providers.base import Asset, PollState
from neoai.services.providers.fal_queue import FalQueueAdapter, KlingQueueAdapter, PikaQueueAdapter
from neoai.services.providers.job_webhook import JobWebhookAdapter
from neoai.services.providers.webhook import SingleCallWebhookAdapter
from neoai.services.tool_registry import FAMILY_QUEUE, TOOL_REGISTRY, ToolSpec

PIKA_SUBMIT = "https://queue.test/fal-ai/pika/v2.2/pikascenes"
PIKA_STATUS = "https://queue.test/fal-ai/pika/requests"
KLING_SUBMIT = "https://queue.test/fal-ai/kling-video/v2.5-turbo/pro/image-to-video"
STAGED = "https://i.ibb.co/abc/upload.png"


def make_adapter(settings, backend, tool_id, variant=None):
    spec = TOOL_REGISTRY.resolve(tool_id, variant)
    return build_adapter(spec, provider_config(spec.provider, settings), backend.client())


def tts_urls(settings):
    config = provider_config("text-to-speech", settings)
    return config.base_url, config.status_url


def webhook_url(settings, provider):
    return provider_config(provider, settings).base_url


# ---------------------------------------------------------------------------
# Adapter selection
# ---------------------------------------------------------------------------

def test_static_adapter_lookup():
    assert adapter_class(TOOL_REGISTRY.resolve("image-to-video", "pika")) is PikaQueueAdapter
    assert adapter_class(TOOL_REGISTRY.resolve("image-to-video", "kling")) is KlingQueueAdapter
    assert adapter_class(TOOL_REGISTRY.resolve("text-to-speech")) is JobWebhookAdapter
    assert adapter_class(TOOL_REGISTRY.resolve("brief-to-images")) is SingleCallWebhookAdapter


def test_queue_adapter_base_is_abstract(settings, backend):
    with pytest.raises(TypeError):
        FalQueueAdapter(provider_config("pika", settings), backend.client())


def test_queue_tool_without_adapter_is_unconfigured():
    spec = ToolSpec("image-to-video", "Image to Video", FAMILY_QUEUE, "sora", "prompt", model_variant="sora")
    with pytest.raises(SubmissionError) as exc:
        adapter_class(spec)
    assert exc.value.kind == ErrorKind.UNCONFIGURED_TOOL


# ---------------------------------------------------------------------------
# fal queue
# ---------------------------------------------------------------------------

@pytest.mark.anyio
async def test_pika_submit_sends_key_auth_and_scene_payload(settings, backend):
    backend.add("POST", PIKA_SUBMIT, reply(json={"request_id": "req-42", "status": "IN_QUEUE"}))
    adapter = make_adapter(settings, backend, "image-to-video", "pika")
    inputs = TOOL_REGISTRY.resolve("image-to-video", "pika").with_defaults({"prompt": "waves", "duration": "10"})

    submission = await adapter.submit(inputs, asset_url=STAGED)

    assert submission.request_id == "req-42"
    assert not submission.terminal
    request = backend.requests[0]
    assert request.headers["Authorization"] == "Key fal-test-key-0123456789"
    assert json.loads(request.content) == {
        "image_urls": [STAGED],
        "prompt": "waves",
        "negative_prompt": "",
        "aspect_ratio": "1:1",
        "resolution": "720p",
        "duration": 10,
        "ingredients_mode": "creative",
    }


@pytest.mark.anyio
async def test_kling_submit_payload_types(settings, backend):
    backend.add("POST", KLING_SUBMIT, reply(json={"data": {"request_id": "k-1"}}))
    adapter = make_adapter(settings, backend, "image-to-video", "kling")

    submission = await adapter.submit({"prompt": "dance", "duration": 10, "cfg_scale": "0.7"}, asset_url=STAGED)

    assert submission.request_id == "k-1"
    body = json.loads(backend.requests[0].content)
    assert body == {
        "prompt": "dance",
        "image_url": STAGED,
        "duration": "10",
        "negative_prompt": "",
        "cfg_scale": 0.7,
    }


@pytest.mark.anyio
async def test_fal_submit_accepts_plain_id(settings, backend):
    backend.add("POST", PIKA_SUBMIT, reply(json={"id": "plain-id"}))
    adapter = make_adapter(settings, backend, "image-to-video", "pika")
    submission = await adapter.submit({"prompt": "x"}, asset_url=STAGED)
    assert submission.request_id == "plain-id"


@pytest.mark.anyio
async def test_fal_submit_without_request_id_is_rejected(settings, backend):
    backend.add("POST", PIKA_SUBMIT, reply(json={"status": "IN_QUEUE"}))
    adapter = make_adapter(settings, backend, "image-to-video", "pika")

    with pytest.raises(SubmissionError) as exc:
        await adapter.submit({"prompt": "x"}, asset_url=STAGED)

    assert exc.value.kind == ErrorKind.SUBMISSION_REJECTED
    assert exc.value.message == "No request_id found in response"


@pytest.mark.anyio
async def test_fal_submit_http_error_is_rejected(settings, backend):
    backend.add("POST", PIKA_SUBMIT, reply(422, text="invalid image_urls"))
    adapter = make_adapter(settings, backend, "image-to-video", "pika")

    with pytest.raises(SubmissionError) as exc:
        await adapter.submit({"prompt": "x"}, asset_url=STAGED)

    assert exc.value.kind == ErrorKind.SUBMISSION_REJECTED
    assert exc.value.message == "Failed to submit request: 422 - invalid image_urls"


@pytest.mark.anyio
async def test_fal_status_url_and_transport_errors(settings, backend):
    backend.add(
        "GET", f"{PIKA_STATUS}/req-42",
        reply(500),
        reply(200, text="<html>gateway</html>"),
        fail_with(),
        reply(json={"status": "IN_PROGRESS"}),
    )
    adapter = make_adapter(settings, backend, "image-to-video", "pika")

    for _ in range(3):
        with pytest.raises(PollingTransportError):
            await adapter.check_status("req-42")
    assert await adapter.check_status("req-42") == {"status": "IN_PROGRESS"}
    assert backend.requests[-1].headers["Authorization"] == "Key fal-test-key-0123456789"


@pytest.mark.parametrize("payload,state,message", [
    ({"status": "COMPLETED", "video": {"url": "u"}}, PollState.SUCCEEDED, None),
    ({"state": "completed"}, PollState.SUCCEEDED, None),
    ({"status": "FAILED", "error": "nsfw content detected"}, PollState.FAILED, "nsfw content detected"),
    ({"status": "failed"}, PollState.FAILED, "Processing failed"),
    ({"status": "IN_QUEUE"}, PollState.PENDING, None),
    ({"status": "IN_PROGRESS", "message": "rendering"}, PollState.PENDING, "rendering"),
])
def test_fal_classify(settings, backend, payload, state, message):
    adapter = make_adapter(settings, backend, "image-to-video", "pika")
    check = adapter.classify(payload)
    assert check.state == state
    assert check.message == message


def test_fal_extract_result_prefers_video_url(settings, backend):
    adapter = make_adapter(settings, backend, "image-to-video", "kling")
    assert adapter.extract_result({"status": "COMPLETED", "data": {"video": {"url": "https://x/v.mp4"}}}) == {
        "video_url": "https://x/v.mp4",
        "type": "video/mp4",
    }
    payload = {"status": "COMPLETED", "image_url": "https://x/b.png"}
    assert adapter.extract_result(payload) is payload


# ---------------------------------------------------------------------------
# Job-id webhook
# ---------------------------------------------------------------------------

@pytest.mark.anyio
async def test_job_webhook_submit_returns_job_id(settings, backend):
    submit_url, _ = tts_urls(settings)
    backend.add("POST", submit_url, reply(json={"jobId": "tts-7", "status": "processing"}))
    adapter = make_adapter(settings, backend, "text-to-speech")

    submission = await adapter.submit({"prompt": "hello there"})

    assert submission.request_id == "tts-7"
    assert not submission.terminal
    request = backend.requests[0]
    assert request.headers["content-type"].startswith("multipart/form-data")
    assert b'name="prompt"' in request.content
    assert b"hello there" in request.content


@pytest.mark.anyio
async def test_job_webhook_polls_status_endpoint_with_job_id(settings, backend):
    _, status_url = tts_urls(settings)
    assert "/status/" in status_url
    backend.add("GET", status_url, reply(json={"status": "processing", "message": "Synthesizing"}))
    adapter = make_adapter(settings, backend, "text-to-speech")

    payload = await adapter.check_status("tts-7")

    assert payload["message"] == "Synthesizing"
    request = backend.requests[0]
    assert request.url.params["jobId"] == "tts-7"
    assert request.headers["Accept"] == "application/json"


@pytest.mark.anyio
async def test_job_webhook_synchronous_answer_is_terminal(settings, backend):
    submit_url, _ = tts_urls(settings)
    backend.add(
        "POST", submit_url,
        reply(json={"audio_url": "https://x/c.mp3"}),
        reply(content=b"ID3audio", headers={"content-type": "audio/mpeg"}),
    )
    adapter = make_adapter(settings, backend, "text-to-speech")

    first = await adapter.submit({"prompt": "a"})
    second = await adapter.submit({"prompt": "b"})

    assert first.terminal and first.payload == {"audio_url": "https://x/c.mp3"}
    assert second.terminal and second.payload == b"ID3audio"
    assert second.content_type == "audio/mpeg"


@pytest.mark.anyio
async def test_job_webhook_processing_without_job_id_is_rejected(settings, backend):
    submit_url, _ = tts_urls(settings)
    backend.add("POST", submit_url, reply(json={"status": "processing"}))
    adapter = make_adapter(settings, backend, "text-to-speech")

    with pytest.raises(SubmissionError) as exc:
        await adapter.submit({"prompt": "a"})
    assert exc.value.kind == ErrorKind.SUBMISSION_REJECTED


@pytest.mark.parametrize("payload,state,message", [
    ({"status": "completed", "result": {"audio_url": "u"}}, PollState.SUCCEEDED, None),
    ({"status": "completed"}, PollState.PENDING, "Status: completed"),
    ({"status": "failed", "error": "voice not found"}, PollState.FAILED, "voice not found"),
    ({"status": "failed"}, PollState.FAILED, "Processing failed"),
    ({"status": "queued"}, PollState.PENDING, "Status: queued"),
])
def test_job_webhook_classify(settings, backend, payload, state, message):
    adapter = make_adapter(settings, backend, "text-to-speech")
    check = adapter.classify(payload)
    assert check.state == state
    assert check.message == message


def test_job_webhook_extracts_nested_result(settings, backend):
    adapter = make_adapter(settings, backend, "text-to-speech")
    assert adapter.extract_result({"status": "completed", "result": {"audio_url": "u"}}) == {"audio_url": "u"}


# ---------------------------------------------------------------------------
# Single-call webhook
# ---------------------------------------------------------------------------

@pytest.mark.anyio
async def test_single_call_webhook_forwards_asset_and_returns_binary(settings, backend):
    url = webhook_url(settings, "image-editing")
    backend.add("POST", url, reply(content=b"\x89PNG", headers={"content-type": "image/png"}))
    adapter = make_adapter(settings, backend, "image-editing")

    submission = await adapter.submit(
        {"image_prompt": "make it blue", "aspect_ratio": "1:1"},
        asset=Asset(b"raw-image", filename="in.jpg", content_type="image/jpeg"),
    )

    assert submission.terminal
    assert submission.payload == b"\x89PNG"
    assert submission.content_type == "image/png"
    body = backend.requests[0].content
    assert b'name="image"; filename="in.jpg"' in body
    assert b"raw-image" in body
    assert b'name="image_prompt"' in body


@pytest.mark.anyio
async def test_single_call_webhook_status_check_is_a_no_op(settings, backend):
    adapter = make_adapter(settings, backend, "brief-to-images")
    assert await adapter.check_status("anything") is None
    assert backend.requests == []


@pytest.mark.anyio
async def test_single_call_webhook_connection_error_is_rejected(settings, backend):
    backend.add("POST", webhook_url(settings, "brief-to-images"), fail_with())
    adapter = make_adapter(settings, backend, "brief-to-images")

    with pytest.raises(SubmissionError) as exc:
        await adapter.submit({"prompt": "x"})
    assert exc.value.kind == ErrorKind.SUBMISSION_REJECTED
