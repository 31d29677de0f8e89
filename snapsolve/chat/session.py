"""Conversation engine for one chat session.

Turns alternate user / assistant, starting with a user turn. Editing or
regenerating never overwrites a message: it appends a new version to the
turn and makes it active. The only destructive operation is ``reset_chat``,
which drops every turn from a given position onwards.

Every mutation is prepared on a copy of the session record and written
message-first, session-last. The in-memory state changes only after both
writes succeed, so a failed call leaves the engine as it was.

The engine does no locking: callers issue one mutating call at a time per
session.
"""

from __future__ import annotations

import logging
from itertools import chain
from typing import Mapping

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from snapsolve.chat.history import ChatHistory
from snapsolve.chat.ocr import TextRecognizer
from snapsolve.chat.projection import project, referenced_message_ids
from snapsolve.chat.prompts import image_question_instruction, solving_system_prompt
from snapsolve.config import Settings, settings as default_settings
from snapsolve.errors import (
    ConfigurationError,
    SessionNotFoundError,
    TurnNotFoundError,
    TurnRoleError,
    VersionNotFoundError,
)
from snapsolve.gateway.base import CompletionGateway
from snapsolve.models.chat import (
    ChatInput,
    ChatMessage,
    ChatSession,
    ChatTurn,
    MessageRole,
    utcnow,
)
from snapsolve.models.conf import ChatConf, ModelConfig
from snapsolve.storage.base import StorageKeys

logger = logging.getLogger(__name__)

TITLE_LENGTH = 30
IMAGE_TITLE = "Image question"


def _highest_message_seq(
    session: ChatSession, messages: Mapping[str, ChatMessage]
) -> int:
    highest = session.message_seq
    for message_id in chain(messages, referenced_message_ids(session)):
        _, sep, tail = message_id.rpartition(StorageKeys.MESSAGE_INFIX)
        if sep and tail.isdigit():
            highest = max(highest, int(tail))
    return highest


def _derive_title(chat_input: ChatInput) -> str:
    text = " ".join((chat_input.text or "").split())
    if text:
        return text[:TITLE_LENGTH]
    return IMAGE_TITLE


def expected_role(session: ChatSession) -> MessageRole:
    """Role the next new turn must have."""
    if not session.turns or session.turns[-1].role == MessageRole.ASSISTANT:
        return MessageRole.USER
    return MessageRole.ASSISTANT


def _resolve_models(conf: ChatConf) -> tuple[ModelConfig, ModelConfig | None]:
    if not conf.active_solving_model:
        raise ConfigurationError("no solving model is configured")
    solving = conf.find_model(conf.active_solving_model)
    if solving is None:
        raise ConfigurationError(
            f"solving model {conf.active_solving_model!r} is not in the model list"
        )
    if not solving.is_text_only:
        return solving, None

    if not conf.active_ocr_model:
        raise ConfigurationError(
            "a recognition model is required when the solving model is text-only"
        )
    ocr = conf.find_model(conf.active_ocr_model)
    if ocr is None:
        raise ConfigurationError(
            f"recognition model {conf.active_ocr_model!r} is not in the model list"
        )
    return solving, ocr


class SessionEngine:
    """Turn/version model of one conversation plus the calls that extend it."""

    def __init__(
        self,
        conf: ChatConf,
        session: ChatSession,
        messages: Mapping[str, ChatMessage],
        *,
        history: ChatHistory,
        gateway: CompletionGateway,
        settings: Settings | None = None,
    ) -> None:
        self._solving_model, ocr_model = _resolve_models(conf)
        self._gateway = gateway
        self._history = history
        self._settings = settings or default_settings
        self._recognizer: TextRecognizer | None = None
        if ocr_model is not None:
            self._recognizer = TextRecognizer(gateway, ocr_model)

        self._session = session.model_copy(deep=True)
        self._messages: dict[str, ChatMessage] = dict(messages)
        project(self._session, self._messages)
        self._session.message_seq = _highest_message_seq(self._session, self._messages)

        logger.debug(
            "Session engine ready: session=%s turns=%d model=%s ocr=%s",
            self._session.id or "<new>",
            len(self._session.turns),
            self._solving_model.model,
            ocr_model.model if ocr_model else "-",
        )

    @classmethod
    async def open(
        cls,
        conf: ChatConf,
        *,
        history: ChatHistory,
        gateway: CompletionGateway,
        session_id: str | None = None,
        settings: Settings | None = None,
    ) -> "SessionEngine":
        """Start a new empty session, or resume ``session_id`` from storage."""
        if not session_id:
            return cls(
                conf, ChatSession(), {}, history=history, gateway=gateway, settings=settings
            )

        session = await history.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(f"session {session_id} not found")
        messages = await history.get_messages(session)
        return cls(
            conf, session, messages, history=history, gateway=gateway, settings=settings
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def session(self) -> ChatSession:
        """The live session record. Treat as read-only."""
        return self._session

    @property
    def solving_model(self) -> ModelConfig:
        return self._solving_model

    @property
    def needs_ocr(self) -> bool:
        return self._recognizer is not None

    @property
    def current_messages(self) -> list[ChatMessage]:
        return project(self._session, self._messages)

    def get_current_message(self, turn_index: int) -> ChatMessage | None:
        if not 0 <= turn_index < len(self._session.turns):
            return None
        return self._messages.get(self._session.turns[turn_index].active_message_id)

    def get_message(self, message_id: str) -> ChatMessage | None:
        return self._messages.get(message_id)

    def get_turn(self, turn_index: int) -> ChatTurn | None:
        if not 0 <= turn_index < len(self._session.turns):
            return None
        return self._session.turns[turn_index]

    def next_message_id(self) -> str:
        return StorageKeys.message(self._session.id, self._session.message_seq + 1)

    # ------------------------------------------------------------------
    # Message creation
    # ------------------------------------------------------------------

    async def create_user_message(self, chat_input: ChatInput) -> ChatMessage:
        """Append a new user turn, recognising the image first if required."""
        self._check_new_turn(MessageRole.USER)
        chat_input = await self._route_input(chat_input)
        return await self._append(None, MessageRole.USER, chat_input)

    async def update_user_message(
        self, turn_index: int, chat_input: ChatInput
    ) -> ChatMessage:
        """Add an edited version to an existing user turn and activate it."""
        self._check_existing_turn(turn_index, MessageRole.USER)
        chat_input = await self._route_input(chat_input)
        return await self._append(turn_index, MessageRole.USER, chat_input)

    async def create_assistant_message(self, content: str) -> ChatMessage:
        return await self._append(None, MessageRole.ASSISTANT, ChatInput(text=content))

    async def update_assistant_message(self, turn_index: int, content: str) -> ChatMessage:
        return await self._append(
            turn_index, MessageRole.ASSISTANT, ChatInput(text=content)
        )

    async def _route_input(self, chat_input: ChatInput) -> ChatInput:
        if not chat_input.text and not chat_input.image_uri:
            raise ValueError("a user message needs text or an image")
        if self._recognizer is None or not chat_input.image_uri:
            return chat_input

        logger.info("Recognising question image for session %s", self._session.id or "<new>")
        text = await self._recognizer.recognize(chat_input.image_uri)
        # a text-only model never receives the image
        return ChatInput(
            text=text,
            image_uri=None,
            original_uri=chat_input.original_uri or chat_input.image_uri,
        )

    def _check_new_turn(self, role: MessageRole) -> None:
        expected = expected_role(self._session)
        if role != expected:
            raise TurnRoleError(
                f"turn {len(self._session.turns)} must be a {expected.value} turn, "
                f"got {role.value}"
            )

    def _check_existing_turn(self, turn_index: int, role: MessageRole) -> ChatTurn:
        turn = self._require_turn(turn_index)
        if turn.role != role:
            raise TurnRoleError(
                f"turn {turn_index} is a {turn.role.value} turn, got {role.value}"
            )
        return turn

    def _require_turn(self, turn_index: int) -> ChatTurn:
        if not 0 <= turn_index < len(self._session.turns):
            raise TurnNotFoundError(turn_index, len(self._session.turns))
        return self._session.turns[turn_index]

    async def _append(
        self, turn_index: int | None, role: MessageRole, chat_input: ChatInput
    ) -> ChatMessage:
        if turn_index is None:
            self._check_new_turn(role)
        else:
            self._check_existing_turn(turn_index, role)

        draft = self._session.model_copy(deep=True)
        if not draft.id:
            # a failed first write leaves the allocated slot as a history hole
            draft.id = await self._history.get_next_session_id()
        draft.message_seq += 1
        message_id = StorageKeys.message(draft.id, draft.message_seq)

        if turn_index is None:
            turn_index = len(draft.turns)
            version_index = 0
        else:
            version_index = len(draft.turns[turn_index].message_ids)

        message = ChatMessage(
            id=message_id,
            role=role,
            content=chat_input.text,
            image_uri=chat_input.image_uri,
            original_uri=chat_input.original_uri,
            turn_index=turn_index,
            version_index=version_index,
        )

        if version_index == 0:
            draft.turns.append(
                ChatTurn(
                    turn_index=turn_index,
                    role=role,
                    message_ids=[message.id],
                    active_version=0,
                )
            )
        else:
            turn = draft.turns[turn_index]
            turn.message_ids.append(message.id)
            turn.active_version = version_index

        if not draft.title and role == MessageRole.USER:
            draft.title = _derive_title(chat_input)
        draft.timestamp = message.timestamp

        await self._history.update_session(draft, message)
        self._messages[message.id] = message
        self._session = draft

        logger.debug(
            "Stored %s message %s (turn=%d version=%d)",
            role.value,
            message.id,
            turn_index,
            version_index,
        )
        return message

    # ------------------------------------------------------------------
    # Model calls
    # ------------------------------------------------------------------

    def build_request(self, turn_index: int) -> list[BaseMessage]:
        """System prompt plus the projection up to and including ``turn_index``."""
        self._require_turn(turn_index)
        request: list[BaseMessage] = [SystemMessage(content=solving_system_prompt())]
        for message in self.current_messages[: turn_index + 1]:
            request.append(self._to_langchain(message))
        return request

    @staticmethod
    def _to_langchain(message: ChatMessage) -> BaseMessage:
        if message.role == MessageRole.USER:
            if message.has_image:
                return HumanMessage(
                    content=[
                        {"type": "image_url", "image_url": {"url": message.image_uri}},
                        {
                            "type": "text",
                            "text": message.content or image_question_instruction(),
                        },
                    ]
                )
            return HumanMessage(content=message.content or "")
        if message.role == MessageRole.ASSISTANT:
            return AIMessage(content=message.content or "")
        return SystemMessage(content=message.content or "")

    async def chat(self, turn_index: int | None = None) -> str:
        """Ask the solving model to answer the conversation up to ``turn_index``.

        Defaults to the last turn. Returns the model's text, ``""`` if it
        produced none. Gateway errors propagate unchanged.
        """
        if turn_index is None:
            turn_index = len(self._session.turns) - 1
        request = self.build_request(turn_index)
        logger.info(
            "Solving session=%s turn=%d with model=%s",
            self._session.id,
            turn_index,
            self._solving_model.model,
        )
        return await self._gateway.complete(
            self._solving_model,
            request,
            temperature=self._settings.solving_temperature,
            presence_penalty=self._settings.solving_presence_penalty,
        )

    async def refresh_chat(self, turn_index: int) -> str:
        """Request a fresh answer at ``turn_index``.

        On a user turn, later turns are discarded and that question is
        answered again. On an assistant turn, the answer and everything after
        it are discarded and the preceding question is answered again.
        """
        turn = self._require_turn(turn_index)
        if turn.role == MessageRole.USER:
            if turn_index < len(self._session.turns) - 1:
                await self.reset_chat(turn_index + 1)
            return await self.chat(turn_index)

        if turn_index == 0:
            raise TurnNotFoundError(turn_index - 1, len(self._session.turns))
        await self.reset_chat(turn_index)
        return await self.chat(turn_index - 1)

    async def solve(self, chat_input: ChatInput) -> ChatMessage:
        """Ask a new question and store the model's answer as the next turn."""
        question = await self.create_user_message(chat_input)
        answer = await self.chat(question.turn_index)
        return await self.create_assistant_message(answer)

    # ------------------------------------------------------------------
    # Versions and truncation
    # ------------------------------------------------------------------

    async def switch_version(self, turn_index: int, version_index: int) -> ChatMessage:
        """Make an existing version of a turn the active one."""
        turn = self._require_turn(turn_index)
        if not 0 <= version_index < len(turn.message_ids):
            raise VersionNotFoundError(turn_index, version_index, len(turn.message_ids))

        draft = self._session.model_copy(deep=True)
        draft.turns[turn_index].active_version = version_index
        await self._history.update_session(draft)
        self._session = draft
        return self._messages[draft.turns[turn_index].active_message_id]

    async def reset_chat(self, from_turn_index: int) -> None:
        """Drop turns ``from_turn_index`` onwards and delete their messages."""
        if not 0 <= from_turn_index <= len(self._session.turns):
            raise TurnNotFoundError(from_turn_index, len(self._session.turns))
        if from_turn_index == len(self._session.turns):
            return

        removed = referenced_message_ids(self._session, from_turn_index)
        draft = self._session.model_copy(deep=True)
        draft.turns = draft.turns[:from_turn_index]
        await self._history.reset_session(draft, removed)

        self._session = draft
        for message_id in removed:
            self._messages.pop(message_id, None)
        logger.info(
            "Reset session %s from turn %d (%d messages removed)",
            self._session.id,
            from_turn_index,
            len(removed),
        )
