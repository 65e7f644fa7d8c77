import uuid
from dataclasses import dataclass, field

from storefront.logger import get_logger
from storefront.models import database as store
from storefront.models.schemas import Product
from storefront.services.assistant import AssistantConversation
from storefront.services.assistant_client import AssistantClient
from storefront.services.errors import StoreUnavailable
from storefront.services.metrics import ASSISTANT_QUERY_EVENT
from storefront.services.notifications import Notifier
from storefront.services.speech import ClientPlayback, StreamedAudioCapture

logger = get_logger("conversations")


@dataclass
class MountedWidget:
    session_id: str
    modality: str
    product_id: str | None
    conversation: AssistantConversation
    notifier: Notifier
    capture: StreamedAudioCapture | None = None
    playback: ClientPlayback | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))


class ConversationRegistry:
    """In-memory table of the assistant widgets each browser session has mounted.

    Every completed query is recorded as an ``assistant_query`` event for the
    admin dashboard.
    """

    def __init__(self, client: AssistantClient, db_path: str, capture_ceiling: float = 15.0,
                 context_turns: int = 3, min_audio_bytes: int = 1000):
        self.client = client
        self.db_path = db_path
        self.capture_ceiling = capture_ceiling
        self.context_turns = context_turns
        self.min_audio_bytes = min_audio_bytes
        self._widgets: dict[str, MountedWidget] = {}

    def mount(self, session_id: str, product: Product | None, modality: str = "text") -> MountedWidget:
        notifier = Notifier()
        capture = playback = None
        if modality == "voice":
            capture = StreamedAudioCapture()
            playback = ClientPlayback()

        async def record(conversation: AssistantConversation):
            event = {
                "product_id": product.id if product else None,
                "modality": modality,
                "intent": conversation.last_intent.intent.value if conversation.last_intent else None,
                "response_ms": conversation.last_response_ms,
                "fallback": conversation.last_used_fallback,
            }
            try:
                await store.log_event(self.db_path, session_id, ASSISTANT_QUERY_EVENT, event)
            except StoreUnavailable as e:
                logger.error("could not record assistant query: %s", e)

        conversation = AssistantConversation(
            self.client,
            notifier,
            product=product,
            capture=capture,
            synthesizer=playback,
            capture_ceiling=self.capture_ceiling,
            context_turns=self.context_turns,
            min_audio_bytes=self.min_audio_bytes,
            on_exchange=record,
        )
        widget = MountedWidget(
            session_id=session_id,
            modality=modality,
            product_id=product.id if product else None,
            conversation=conversation,
            notifier=notifier,
            capture=capture,
            playback=playback,
        )
        self._widgets[widget.id] = widget
        logger.info("session %s mounted %s widget %s", session_id, modality, widget.id)
        return widget

    def get(self, session_id: str, widget_id: str) -> MountedWidget | None:
        """Widgets are only visible to the session that mounted them."""
        widget = self._widgets.get(widget_id)
        if widget is None or widget.session_id != session_id:
            return None
        return widget

    def unmount(self, session_id: str, widget_id: str) -> bool:
        widget = self.get(session_id, widget_id)
        if widget is None:
            return False
        widget.conversation.close()
        del self._widgets[widget_id]
        return True

    def close_all(self):
        for widget in self._widgets.values():
            widget.conversation.close()
        self._widgets.clear()
