from snapsolve.gateway.base import CompletionGateway
from snapsolve.gateway.langchain import LangChainGateway, message_text

__all__ = ["CompletionGateway", "LangChainGateway", "message_text"]
