"""Unit tests for notekeeper.client.assist."""

import asyncio
import json

import httpx
import pytest

from notekeeper.backend.core.config_schema import AssistClientSchema
from notekeeper.client.api import APIClient
from notekeeper.client.assist import (
    LocalTextImprovementService,
    TextImprovementService,
    build_assist_service,
    convert_to_bullets,
    improve_text_locally,
    should_convert_to_bullets,
)
from notekeeper.client.errors import AssistError, AssistReason, ValidationError


@pytest.fixture
def make_assist():
    """Assist service whose gateway answers with `handler`; requests are recorded."""
    def _build(handler, **kwargs):
        seen: list[httpx.Request] = []

        async def dispatch(request):
            seen.append(request)
            result = handler(request)
            if asyncio.iscoroutine(result):
                result = await result
            return result

        api = APIClient(base_url="http://gateway.test", transport=httpx.MockTransport(dispatch))
        return TextImprovementService(api, **kwargs), seen

    return _build


def improved(text: str) -> httpx.Response:
    return httpx.Response(200, json={"generated_text": text, "model": "gemini-test"})


class TestPayload:
    def test_max_length_is_twice_the_text(self, make_assist):
        service, _ = make_assist(lambda request: improved("x"))

        assert service.build_payload("hello") == {
            "text": "hello",
            "max_length": 10,
            "temperature": 0.3,
        }

    def test_max_length_is_capped(self, make_assist):
        service, _ = make_assist(lambda request: improved("x"), max_length=100)

        assert service.build_payload("a" * 400)["max_length"] == 100


class TestImprove:
    @pytest.mark.asyncio
    async def test_success_strips_echo(self, make_assist):
        service, seen = make_assist(lambda request: improved("Improved version:\nBetter"))

        result = await service.improve("  make this better  ")

        assert result == "Better"
        assert seen[0].url.path == "/api/v1/improve-text"
        assert json.loads(seen[0].content)["text"] == "make this better"
        assert service.is_available() is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   \n"])
    async def test_blank_text_makes_no_request(self, make_assist, text):
        service, seen = make_assist(lambda request: improved("x"))

        with pytest.raises(ValidationError):
            await service.improve(text)

        assert seen == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "reason"),
        [
            (400, AssistReason.BAD_REQUEST),
            (401, AssistReason.AUTH),
            (404, AssistReason.NOT_DEPLOYED),
            (429, AssistReason.RATE_LIMITED),
            (500, AssistReason.SERVER),
            (503, AssistReason.MODEL_LOADING),
        ],
    )
    async def test_status_maps_to_reason(self, make_assist, status, reason):
        service, _ = make_assist(
            lambda request: httpx.Response(status, json={"error": "Upstream said no"})
        )

        with pytest.raises(AssistError) as exc_info:
            await service.improve("some text")

        assert exc_info.value.reason is reason
        assert exc_info.value.status_code == status
        assert service.is_available() is True

    @pytest.mark.asyncio
    async def test_other_status_carries_gateway_detail(self, make_assist):
        service, _ = make_assist(
            lambda request: httpx.Response(
                502, json={"error": "Gemini API error: 418", "details": "teapot"}
            )
        )

        with pytest.raises(AssistError) as exc_info:
            await service.improve("some text")

        assert exc_info.value.reason is AssistReason.UPSTREAM
        assert exc_info.value.message == "AI error: Gemini API error: 418"

    @pytest.mark.asyncio
    async def test_envelope_error_detail(self, make_assist):
        service, _ = make_assist(
            lambda request: httpx.Response(
                502, json={"success": False, "error": {"code": "X", "message": "Bad upstream"}}
            )
        )

        with pytest.raises(AssistError) as exc_info:
            await service.improve("some text")

        assert exc_info.value.detail == "Bad upstream"

    @pytest.mark.asyncio
    async def test_transport_failure(self, make_assist):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        service, _ = make_assist(refuse)

        with pytest.raises(AssistError) as exc_info:
            await service.improve("some text")

        assert exc_info.value.reason is AssistReason.NETWORK
        assert exc_info.value.message == "Connection failed. Check internet connection."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{"generated_text": ""}, {"generated_text": "  \n"}, {}])
    async def test_empty_output(self, make_assist, body):
        service, _ = make_assist(lambda request: httpx.Response(200, json=body))

        with pytest.raises(AssistError) as exc_info:
            await service.improve("some text")

        assert exc_info.value.reason is AssistReason.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_invalid_json(self, make_assist):
        service, _ = make_assist(lambda request: httpx.Response(200, text="not json"))

        with pytest.raises(AssistError) as exc_info:
            await service.improve("some text")

        assert exc_info.value.reason is AssistReason.UPSTREAM

    @pytest.mark.asyncio
    async def test_busy_returns_none(self, make_assist):
        release = asyncio.Event()

        async def slow(request):
            await release.wait()
            return improved("Done")

        service, seen = make_assist(slow)

        first = asyncio.create_task(service.improve("first text"))
        await asyncio.sleep(0)
        while not seen:
            await asyncio.sleep(0)

        assert service.is_available() is False
        assert await service.improve("second text") is None

        release.set()
        assert await first == "Done"
        assert len(seen) == 1
        assert service.is_available() is True


class TestConnection:
    @pytest.mark.asyncio
    async def test_probe(self, make_assist):
        service, seen = make_assist(lambda request: improved("Gateway test successful!"))

        assert await service.test_connection() == {"success": True, "status": 200}
        assert json.loads(seen[0].content) == {"text": "test"}

    @pytest.mark.asyncio
    async def test_probe_failure_status(self, make_assist):
        service, _ = make_assist(lambda request: httpx.Response(500, json={"error": "x"}))

        assert await service.test_connection() == {"success": False, "status": 500}

    @pytest.mark.asyncio
    async def test_probe_unreachable(self, make_assist):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        service, _ = make_assist(refuse)

        result = await service.test_connection()

        assert result["success"] is False
        assert "connection refused" in result["error"]


class TestLocalHeuristics:
    def test_removes_redundant_and_wordy_phrases(self):
        result = improve_text_locally(
            "i think that we need to go to the store in order to buy milk"
        )
        assert result == "We need to go to the store to buy milk."

    def test_removes_filler_words(self):
        assert improve_text_locally("This is really very important") == "This is important."

    def test_run_on_list_becomes_bullets(self):
        result = improve_text_locally(
            "We bought apples and oranges and bananas and grapes for the party tonight"
        )
        assert result == (
            "• We bought apples\n• Oranges\n• Bananas\n• Grapes for the party tonight."
        )

    def test_nothing_left_returns_input(self):
        assert improve_text_locally("um uh") == "um uh"

    def test_should_convert_needs_length(self):
        assert should_convert_to_bullets("a and b and c") is False
        assert should_convert_to_bullets(
            "We need bread and butter and jam for the long weekend trip"
        ) is True

    def test_convert_too_many_items_is_unchanged(self):
        text = ", ".join(f"item{i}" for i in range(10))
        assert convert_to_bullets(text) == text


class TestLocalService:
    @pytest.mark.asyncio
    async def test_improve(self):
        service = LocalTextImprovementService(delay=0)

        assert await service.improve("This is really very important") == "This is important."
        assert service.is_available() is True

    @pytest.mark.asyncio
    async def test_blank_text(self):
        with pytest.raises(ValidationError):
            await LocalTextImprovementService(delay=0).improve("  ")

    @pytest.mark.asyncio
    async def test_connection_always_succeeds(self):
        result = await LocalTextImprovementService(delay=0).test_connection()
        assert result["success"] is True


class TestBuildAssistService:
    def test_gateway_mode(self):
        api = APIClient(base_url="http://gateway.test")
        config = AssistClientSchema(
            mode="gateway", endpoint="/custom/improve", max_length=64, temperature=0.5
        )

        service = build_assist_service(api, config)

        assert isinstance(service, TextImprovementService)
        assert service.build_payload("abc") == {"text": "abc", "max_length": 6, "temperature": 0.5}

    def test_local_mode(self):
        api = APIClient(base_url="http://gateway.test")
        config = AssistClientSchema(mode="local", endpoint="/api/v1/improve-text")

        assert isinstance(build_assist_service(api, config), LocalTextImprovementService)
