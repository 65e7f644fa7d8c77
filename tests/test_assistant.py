import asyncio
import json

import httpx
import pytest

from storefront.models.schemas import AssistantState
from storefront.services.assistant import AssistantConversation
from storefront.services.errors import CaptureUnavailable
from storefront.services.notifications import Notifier
from storefront.services.responses import NO_PRODUCT_RESPONSE
from storefront.services.speech import ClientPlayback, StreamedAudioCapture


def ok(text):
    return httpx.Response(200, json={"success": True, "response": text})


async def wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


class FakeMicrophone:
    def __init__(self, audio=b"", fail=False):
        self.audio = audio
        self.fail = fail
        self.open = False

    def start(self):
        if self.fail:
            raise CaptureUnavailable("permission denied")
        self.open = True

    def stop(self):
        self.open = False
        return self.audio


async def test_failed_endpoint_still_answers(make_client, phone):
    client = make_client(lambda request: httpx.Response(500))
    notifier = Notifier()
    conversation = AssistantConversation(client, notifier, product=phone)

    assert await conversation.process_text_query("¿Cuál es el precio?")

    assert [t.role for t in conversation.turns] == ["user", "assistant"]
    assert conversation.turns[1].content == "El precio de Smartphone X es €10.00."
    assert conversation.is_processing is False
    assert conversation.state is AssistantState.IDLE
    [notification] = notifier.drain()
    assert notification.variant == "destructive"
    assert "http://rag.test/api/query" in notification.description


async def test_unsuccessful_body_without_product_apologises(make_client):
    client = make_client(lambda request: httpx.Response(200, json={"success": False, "error": "boom"}))
    conversation = AssistantConversation(client, Notifier())

    await conversation.process_text_query("¿Qué características tiene?")

    assert conversation.turns[-1].content == NO_PRODUCT_RESPONSE
    assert conversation.last_used_fallback


@pytest.mark.parametrize("body", [[], "ok", {"success": True, "response": {"text": "hola"}}])
async def test_malformed_body_falls_back(make_client, phone, body):
    notifier = Notifier()
    conversation = AssistantConversation(
        make_client(lambda request: httpx.Response(200, json=body)), notifier, product=phone
    )

    assert await conversation.process_text_query("¿Cuál es el precio?")

    assert [t.role for t in conversation.turns] == ["user", "assistant"]
    assert conversation.turns[1].content == "El precio de Smartphone X es €10.00."
    assert conversation.state is AssistantState.IDLE
    assert conversation.last_used_fallback
    assert [n.title for n in notifier.drain()] == ["Asistente no disponible"]


async def test_unreachable_endpoint_falls_back(make_client, phone):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    conversation = AssistantConversation(make_client(handler), Notifier(), product=phone)

    await conversation.process_text_query("Dame detalles")

    assert conversation.turns[-1].content.startswith("Smartphone X: Pantalla OLED")


async def test_second_query_refused_while_awaiting(make_client):
    release = asyncio.Event()

    async def handler(request):
        await release.wait()
        return ok("Respuesta")

    conversation = AssistantConversation(make_client(handler), Notifier())
    first = asyncio.create_task(conversation.process_text_query("hola"))
    await wait_for(lambda: conversation.is_processing)

    assert await conversation.process_text_query("otra pregunta") is False
    assert len(conversation.turns) == 1

    release.set()
    assert await first
    assert len(conversation.turns) == 2
    assert conversation.state is AssistantState.IDLE


async def test_success_speaks_then_returns_to_idle(make_client, phone):
    playback = ClientPlayback()
    conversation = AssistantConversation(
        make_client(lambda request: ok("Tiene doble cámara.")),
        Notifier(),
        product=phone,
        synthesizer=playback,
    )

    await conversation.process_text_query("¿Qué tiene?")

    assert conversation.is_speaking
    assert playback.pending == "Tiene doble cámara."
    playback.finish()
    assert conversation.state is AssistantState.IDLE


async def test_stop_speaking_cancels_playback(make_client):
    playback = ClientPlayback()
    conversation = AssistantConversation(
        make_client(lambda request: ok("Hola")), Notifier(), synthesizer=playback
    )
    await conversation.process_text_query("hola")

    conversation.stop_speaking()

    assert conversation.state is AssistantState.IDLE
    assert playback.pending is None


async def test_request_carries_context_and_intent(make_client, phone):
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return ok(f"respuesta {len(seen)}")

    conversation = AssistantConversation(make_client(handler), Notifier(), product=phone, context_turns=3)
    await conversation.process_text_query("hola")
    await conversation.process_text_query("Compara con el modelo anterior")

    body = seen[-1]
    assert body["query"] == "Compara con el modelo anterior"
    assert body["product_context"]["id"] == "p-phone"
    assert body["product_context"]["price"] == 10.0
    assert body["user_intent"] == "compare"
    assert body["conversation_context"] == [
        {"role": "user", "content": "hola"},
        {"role": "assistant", "content": "respuesta 1"},
    ]


async def test_clear_conversation_keeps_state(make_client):
    playback = ClientPlayback()
    conversation = AssistantConversation(
        make_client(lambda request: ok("Hola")), Notifier(), synthesizer=playback
    )
    await conversation.process_text_query("hola")

    conversation.clear_conversation()

    assert conversation.turns == []
    assert conversation.transcript == ""
    assert conversation.is_speaking


async def test_voice_capture_auto_stops_at_ceiling(make_client, phone):
    requests = []

    def handler(request):
        requests.append(request)
        return ok("Cuesta 10 euros.")

    capture = StreamedAudioCapture()
    playback = ClientPlayback()
    conversation = AssistantConversation(
        make_client(handler),
        Notifier(),
        product=phone,
        capture=capture,
        synthesizer=playback,
        capture_ceiling=0.05,
    )

    assert await conversation.start_listening()
    assert conversation.is_listening
    capture.feed(b"\x00" * 2048)

    await wait_for(lambda: conversation.is_speaking)

    assert requests[0].url.path == "/api/voice"
    assert capture.active is False
    assert [t.role for t in conversation.turns] == ["user", "assistant"]
    assert playback.pending == "Cuesta 10 euros."


async def test_explicit_stop_sends_audio(make_client):
    microphone = FakeMicrophone(audio=b"\x01" * 4096)
    conversation = AssistantConversation(
        make_client(lambda request: ok("Entendido")), Notifier(), capture=microphone
    )

    await conversation.start_listening()
    assert await conversation.process_text_query("hola") is False

    assert await conversation.stop_listening()
    assert microphone.open is False
    assert conversation.turns[-1].content == "Entendido"
    assert conversation.state is AssistantState.IDLE


async def test_short_recording_is_discarded(make_client):
    notifier = Notifier()
    conversation = AssistantConversation(
        make_client(lambda request: ok("no")), notifier, capture=FakeMicrophone(audio=b"\x01" * 10)
    )

    await conversation.start_listening()
    assert await conversation.stop_listening() is False

    assert conversation.state is AssistantState.IDLE
    assert conversation.turns == []
    assert [n.description for n in notifier.drain()] == ["Audio muy corto o silencioso"]


@pytest.mark.parametrize("microphone", [None, FakeMicrophone(fail=True)])
async def test_capture_unavailable(make_client, microphone):
    notifier = Notifier()
    conversation = AssistantConversation(make_client(lambda request: ok("x")), notifier, capture=microphone)

    assert await conversation.start_listening() is False

    assert conversation.state is AssistantState.IDLE
    [notification] = notifier.drain()
    assert notification.title == "Error de micrófono"


async def test_close_releases_microphone(make_client):
    microphone = FakeMicrophone(audio=b"\x01" * 4096)
    conversation = AssistantConversation(
        make_client(lambda request: ok("x")), Notifier(), capture=microphone
    )
    await conversation.start_listening()

    conversation.close()

    assert microphone.open is False
    assert conversation.state is AssistantState.IDLE


async def test_exchange_hook_runs_after_each_query(make_client):
    recorded = []

    async def on_exchange(conversation):
        recorded.append((conversation.last_intent.intent.value, conversation.last_used_fallback))

    conversation = AssistantConversation(
        make_client(lambda request: httpx.Response(503)), Notifier(), on_exchange=on_exchange
    )
    await conversation.process_text_query("¿Es barato?")

    assert recorded == [("price", True)]
