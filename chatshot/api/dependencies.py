"""FastAPI dependencies resolving service objects from application state."""

from fastapi import Request

from ..capture import BrowserSession, ChatCaptureEngine, GenericCaptureEngine
from ..utils.locks import ConcurrencyGate


def get_session(request: Request) -> BrowserSession:
    return request.app.state.session


def get_generic_engine(request: Request) -> GenericCaptureEngine:
    return request.app.state.generic_engine


def get_chat_engine(request: Request) -> ChatCaptureEngine:
    return request.app.state.chat_engine


def get_gate(request: Request) -> ConcurrencyGate:
    return request.app.state.gate
