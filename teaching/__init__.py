"""
Teaching module - talking to the model and running sessions.

Components:
    - model_gateway: single-shot completion client (OpenAI Responses API)
    - demo_replies: canned replies used when no credential is configured
    - tutor_service: demo-or-live choice for one exchange
    - session_controller: turn-taking, attempt counting, mastery feed
"""

from .model_gateway import ModelGateway, NO_TEXT_OUTPUT
from .demo_replies import demo_reply
from .tutor_service import TutorService, create_tutor_service
from .session_controller import SessionController, SessionOptions, SessionState, ExchangeResult

__all__ = [
    "ModelGateway",
    "NO_TEXT_OUTPUT",
    "demo_reply",
    "TutorService",
    "create_tutor_service",
    "SessionController",
    "SessionOptions",
    "SessionState",
    "ExchangeResult",
]
