"""Conversation shell for a local document question-answering assistant."""

__version__ = "0.1.0"
