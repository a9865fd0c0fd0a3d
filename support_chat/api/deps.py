from fastapi import Depends, Request

from support_chat.core.container import ServiceContainer
from support_chat.services.conversation_service import ConversationService
from support_chat.services.llm import ReplyGenerator


def get_service_container(request: Request) -> ServiceContainer:
    """Get the service container created by the application lifespan."""
    container = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("Service container not created; is the app lifespan running?")
    return container


def get_conversation_service(
    container: ServiceContainer = Depends(get_service_container)
) -> ConversationService:
    return container.conversation_service


def get_reply_generator(
    container: ServiceContainer = Depends(get_service_container)
) -> ReplyGenerator:
    return container.reply_generator
