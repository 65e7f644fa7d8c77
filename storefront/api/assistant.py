from fastapi import APIRouter, Depends, HTTPException, Request

from storefront.api.errors import http_error
from storefront.dependencies import get_db_path, get_registry, get_session_id
from storefront.models import database as store
from storefront.models.schemas import (
    ConversationInfo,
    CreateConversationRequest,
    Product,
    QueryRequest,
)
from storefront.services.conversations import ConversationRegistry, MountedWidget
from storefront.services.errors import CaptureUnavailable, StoreUnavailable

router = APIRouter(prefix="/api/assistant/conversations", tags=["assistant"])


def _info(widget: MountedWidget) -> ConversationInfo:
    conversation = widget.conversation
    return ConversationInfo(
        conversation_id=widget.id,
        product_id=widget.product_id,
        modality=widget.modality,
        state=conversation.state,
        transcript=conversation.transcript,
        pending_speech=widget.playback.pending if widget.playback else None,
        turns=conversation.turns,
        notifications=widget.notifier.drain(),
    )


def _widget(
    conversation_id: str,
    session_id: str = Depends(get_session_id),
    registry: ConversationRegistry = Depends(get_registry),
) -> MountedWidget:
    widget = registry.get(session_id, conversation_id)
    if widget is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return widget


def _busy(widget: MountedWidget) -> HTTPException:
    return HTTPException(
        status_code=409,
        detail=f"Assistant is {widget.conversation.state.value}",
    )


@router.post("", response_model=ConversationInfo, status_code=201)
async def mount_conversation(
    body: CreateConversationRequest,
    session_id: str = Depends(get_session_id),
    registry: ConversationRegistry = Depends(get_registry),
    db_path: str = Depends(get_db_path),
):
    product = None
    if body.product_id:
        try:
            row = await store.get_product(db_path, body.product_id)
        except StoreUnavailable as e:
            raise HTTPException(status_code=503, detail=str(e))
        if row is None:
            raise HTTPException(status_code=404, detail="Producto no encontrado")
        product = Product(**row)
    return _info(registry.mount(session_id, product, body.modality))


@router.get("/{conversation_id}", response_model=ConversationInfo)
async def get_conversation(widget: MountedWidget = Depends(_widget)):
    return _info(widget)


@router.post("/{conversation_id}/query", response_model=ConversationInfo)
async def send_query(body: QueryRequest, widget: MountedWidget = Depends(_widget)):
    if not await widget.conversation.process_text_query(body.query):
        raise _busy(widget)
    return _info(widget)


@router.post("/{conversation_id}/listen/start", response_model=ConversationInfo)
async def start_listening(widget: MountedWidget = Depends(_widget)):
    if widget.conversation.is_busy:
        raise _busy(widget)
    if not await widget.conversation.start_listening():
        raise http_error(CaptureUnavailable("microphone unavailable"), widget.notifier.drain())
    return _info(widget)


@router.post("/{conversation_id}/listen/audio", status_code=204)
async def upload_audio(request: Request, widget: MountedWidget = Depends(_widget)):
    if widget.capture is None or not widget.conversation.is_listening:
        raise _busy(widget)
    try:
        widget.capture.feed(await request.body())
    except CaptureUnavailable as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/{conversation_id}/listen/stop", response_model=ConversationInfo)
async def stop_listening(widget: MountedWidget = Depends(_widget)):
    await widget.conversation.stop_listening()
    return _info(widget)


@router.post("/{conversation_id}/speaking/stop", response_model=ConversationInfo)
async def stop_speaking(widget: MountedWidget = Depends(_widget)):
    widget.conversation.stop_speaking()
    return _info(widget)


@router.post("/{conversation_id}/speaking/done", response_model=ConversationInfo)
async def speaking_done(widget: MountedWidget = Depends(_widget)):
    """The browser finished playing ``pending_speech``."""
    if widget.playback is not None:
        widget.playback.finish()
    return _info(widget)


@router.delete("/{conversation_id}/turns", response_model=ConversationInfo)
async def clear_conversation(widget: MountedWidget = Depends(_widget)):
    widget.conversation.clear_conversation()
    return _info(widget)


@router.delete("/{conversation_id}", status_code=204)
async def unmount_conversation(
    conversation_id: str,
    session_id: str = Depends(get_session_id),
    registry: ConversationRegistry = Depends(get_registry),
):
    if not registry.unmount(session_id, conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
