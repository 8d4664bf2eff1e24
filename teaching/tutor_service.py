"""
Tutor Service - one exchange with the tutor, demo or live.

With no credential configured the gateway is bypassed entirely and a canned
reply is returned; the prompt is never built.
"""

import logging
from typing import Optional

from config import Settings, get_settings
from core.prompt_builder import TutorContext, build_prompt

from .demo_replies import demo_reply
from .model_gateway import ModelGateway

logger = logging.getLogger(__name__)


class TutorService:
    def __init__(self, gateway: Optional[ModelGateway] = None):
        self.gateway = gateway

    @property
    def demo_mode(self) -> bool:
        return self.gateway is None

    def reply(self, ctx: TutorContext) -> str:
        """Reply text for a context; raises UpstreamServiceError on upstream failure."""
        if self.gateway is None:
            logger.info("Demo mode: canned reply for task=%s mode=%s", ctx.task, ctx.mode)
            return demo_reply(ctx.task, ctx.mode)

        prompt = build_prompt(ctx)
        logger.debug("Prompt built (%d chars) for task=%s mode=%s", len(prompt), ctx.task, ctx.mode)
        return self.gateway.complete(prompt)


def create_tutor_service(settings: Optional[Settings] = None) -> TutorService:
    settings = settings or get_settings()
    if settings.demo_mode:
        logger.warning("OPENAI_API_KEY not set: serving demo replies")
        return TutorService(gateway=None)
    return TutorService(gateway=ModelGateway(api_key=settings.openai_api_key,
                                             model=settings.openai_model))
