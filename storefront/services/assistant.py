import asyncio
import time
from typing import Awaitable, Callable

from storefront.logger import get_logger
from storefront.models.schemas import AssistantState, ConversationTurn, IntentResult, Product
from storefront.services.assistant_client import AssistantClient
from storefront.services.errors import CaptureUnavailable, EndpointUnavailable
from storefront.services.intent import classify_intent
from storefront.services.notifications import Notifier
from storefront.services.responses import fallback_response
from storefront.services.speech import AudioCapture, SpeechSynthesizer

logger = get_logger("assistant")

VOICE_QUERY_PLACEHOLDER = "🎤 Mensaje de voz"


class AssistantConversation:
    """Dialogue state of one mounted assistant widget.

    States move ``idle -> capturing_audio -> awaiting_response ->
    speaking_response -> idle``; typed queries skip the capture step. Only one
    query is in flight at a time: sends are refused while capturing or
    awaiting a response. A failed query still produces an assistant turn (a
    canned answer built from the product, or an apology) so the dialogue never
    stalls.
    """

    def __init__(
        self,
        client: AssistantClient,
        notifier: Notifier,
        product: Product | None = None,
        capture: AudioCapture | None = None,
        synthesizer: SpeechSynthesizer | None = None,
        capture_ceiling: float = 15.0,
        context_turns: int = 3,
        min_audio_bytes: int = 1000,
        on_exchange: Callable[["AssistantConversation"], Awaitable[None]] | None = None,
    ):
        self.client = client
        self.notifier = notifier
        self.product = product
        self.capture = capture
        self.synthesizer = synthesizer
        self.capture_ceiling = capture_ceiling
        self.context_turns = context_turns
        self.min_audio_bytes = min_audio_bytes
        self.on_exchange = on_exchange

        self.state = AssistantState.IDLE
        self.turns: list[ConversationTurn] = []
        self.transcript = ""
        self.last_intent: IntentResult | None = None
        self.last_response_ms: int | None = None
        self.last_used_fallback = False
        self._timer: asyncio.Task | None = None

    @property
    def is_listening(self) -> bool:
        return self.state is AssistantState.CAPTURING_AUDIO

    @property
    def is_processing(self) -> bool:
        return self.state is AssistantState.AWAITING_RESPONSE

    @property
    def is_speaking(self) -> bool:
        return self.state is AssistantState.SPEAKING_RESPONSE

    @property
    def is_busy(self) -> bool:
        return self.is_listening or self.is_processing

    def product_context(self) -> dict | None:
        if self.product is None:
            return None
        return {
            "id": self.product.id,
            "name": self.product.name,
            "description": self.product.description,
            "price": self.product.price,
            "category": self.product.category,
        }

    # -- Audio capture --

    async def start_listening(self) -> bool:
        if self.is_busy:
            logger.info("start_listening ignored while %s", self.state.value)
            return False
        if self.is_speaking:
            self.stop_speaking()
        try:
            if self.capture is None:
                raise CaptureUnavailable("no microphone attached")
            self.capture.start()
        except CaptureUnavailable as e:
            logger.warning("microphone unavailable: %s", e)
            self.notifier.error(
                "Error de micrófono",
                "No se pudo acceder al micrófono. Verifique los permisos.",
            )
            self.state = AssistantState.IDLE
            return False

        self.state = AssistantState.CAPTURING_AUDIO
        self.transcript = "Escuchando..."
        self._timer = asyncio.create_task(self._stop_after_ceiling())
        return True

    async def _stop_after_ceiling(self):
        await asyncio.sleep(self.capture_ceiling)
        if self.is_listening:
            logger.info("capture reached %.0fs ceiling, stopping", self.capture_ceiling)
            await self.stop_listening()

    def _cancel_timer(self):
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    async def stop_listening(self) -> bool:
        """Close the capture and send what was recorded. False if nothing was sent."""
        if not self.is_listening:
            return False
        self._cancel_timer()
        audio = self.capture.stop()
        self.transcript = ""
        if len(audio) < self.min_audio_bytes:
            logger.warning("discarding %d-byte recording", len(audio))
            self.notifier.error("Error de procesamiento", "Audio muy corto o silencioso")
            self.state = AssistantState.IDLE
            return False
        return await self._exchange(VOICE_QUERY_PLACEHOLDER, audio=audio)

    # -- Queries --

    async def process_text_query(self, query: str) -> bool:
        """Send a typed query. Returns False if it was refused."""
        query = query.strip()
        if not query:
            return False
        if self.is_busy:
            logger.info("query refused while %s", self.state.value)
            return False
        if self.is_speaking:
            self.stop_speaking()
        return await self._exchange(query)

    async def _exchange(self, query: str, audio: bytes | None = None) -> bool:
        self.state = AssistantState.AWAITING_RESPONSE
        self.transcript = query
        self.last_intent = classify_intent(query)
        history = [
            {"role": turn.role, "content": turn.content}
            for turn in self.turns[-self.context_turns:]
        ] if self.context_turns > 0 else []
        self.turns.append(ConversationTurn(role="user", content=query))

        payload = {
            "query": query,
            "product_context": self.product_context(),
            "conversation_context": history,
            "user_intent": self.last_intent.intent.value,
            "use_voice": self.synthesizer is not None,
            "enhance_response": True,
        }
        started = time.monotonic()
        try:
            if audio is None:
                answer = await self.client.query(payload)
            else:
                payload.pop("query")
                answer = await self.client.query_audio(audio, payload)
            self.last_used_fallback = False
        except EndpointUnavailable as e:
            logger.warning("assistant endpoint unavailable: %s", e)
            self.notifier.error("Asistente no disponible", f"Servidor en {e.url} no accesible")
            answer = fallback_response(query, self.product)
            self.last_used_fallback = True
        finally:
            if self.is_processing:
                self.state = AssistantState.IDLE

        self.last_response_ms = int((time.monotonic() - started) * 1000)
        self.turns.append(ConversationTurn(role="assistant", content=answer))
        self.transcript = ""
        if self.synthesizer is not None and not self.last_used_fallback:
            self.state = AssistantState.SPEAKING_RESPONSE
            self.synthesizer.speak(answer, self._playback_finished)
        if self.on_exchange is not None:
            await self.on_exchange(self)
        return True

    # -- Playback --

    def _playback_finished(self):
        if self.is_speaking:
            self.state = AssistantState.IDLE

    def stop_speaking(self):
        if self.synthesizer is not None:
            self.synthesizer.cancel()
        if self.is_speaking:
            self.state = AssistantState.IDLE

    # -- Lifecycle --

    def clear_conversation(self):
        self.turns.clear()
        self.transcript = ""

    def close(self):
        """Release the microphone and speech channel when the widget goes away."""
        self._cancel_timer()
        if self.is_listening:
            self.capture.stop()
            self.state = AssistantState.IDLE
        self.stop_speaking()
