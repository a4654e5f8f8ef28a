"""
Editing layer: the Active Page Buffer, the serial queue that orders page
switches, the reorder engine, the document assembler and the
collaborator-facing QuizSession.
"""

from .buffer import ActivePageBuffer
from .serial_queue import SerialQueue
from .session import QuizSession

__all__ = ["ActivePageBuffer", "QuizSession", "SerialQueue"]
