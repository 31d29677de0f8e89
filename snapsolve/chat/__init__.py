"""Conversation state: history index, session engine and OCR routing."""

from snapsolve.chat.history import ChatHistory
from snapsolve.chat.ocr import TextRecognizer
from snapsolve.chat.projection import project
from snapsolve.chat.session import SessionEngine

__all__ = ["ChatHistory", "SessionEngine", "TextRecognizer", "project"]
