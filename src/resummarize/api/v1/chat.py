"""
Chat API Router

Conversational assistant over the user's notes. Every route returns the
full ``ChatState`` so the client can re-render from a single payload.
"""

from fastapi import APIRouter, Depends

from resummarize.api.deps import get_client_session
from resummarize.schemas.chat import ChatState, SendMessageRequest, SwitchModeRequest
from resummarize.services.session import ClientSession

router = APIRouter()


@router.get("/", response_model=ChatState)
async def read_chat(session: ClientSession = Depends(get_client_session)):
    return session.chat.state()


@router.post("/messages", response_model=ChatState)
async def send_message(
    request: SendMessageRequest,
    session: ClientSession = Depends(get_client_session),
):
    """
    Send a user message and wait for the reply.

    In notes mode the most recent notes are attached as context. A failed
    generation still answers 200 with a fallback reply and ``last_error`` set.
    """
    notes = await session.notes.list()
    await session.chat.send_message(request.content, notes)
    return session.chat.state()


@router.delete("/messages", response_model=ChatState)
async def clear_chat(session: ClientSession = Depends(get_client_session)):
    await session.chat.clear_chat()
    return session.chat.state()


@router.post("/mode", response_model=ChatState)
async def switch_mode(
    request: SwitchModeRequest,
    session: ClientSession = Depends(get_client_session),
):
    await session.chat.switch_mode(request.mode)
    return session.chat.state()


@router.post("/open", response_model=ChatState)
async def open_chat(session: ClientSession = Depends(get_client_session)):
    await session.chat.open_chat()
    return session.chat.state()


@router.post("/close", response_model=ChatState)
async def close_chat(session: ClientSession = Depends(get_client_session)):
    await session.chat.close_chat()
    return session.chat.state()


@router.post("/toggle", response_model=ChatState)
async def toggle_chat(session: ClientSession = Depends(get_client_session)):
    await session.chat.toggle_chat()
    return session.chat.state()
