"""Errors raised by the conversation gate and the services around it.

All of them subclass ``ValueError`` so callers can keep the usual
``except ValueError`` handling for bad input; none is fatal to the process.
"""

from collections.abc import Iterable


class GateError(ValueError):
    """Base class for conversation gate errors."""


class UnreadableMaterials(GateError):
    """The materials source cannot be scanned."""

    def __init__(self, location: str, reason: str):
        self.location = location
        self.reason = reason
        super().__init__(f"Materials unreadable at {location}: {reason}")


class UnknownQuestionReference(GateError):
    """An answer references a question ordinal that was never asked."""

    def __init__(self, ordinals: Iterable[int]):
        self.ordinals = sorted(set(ordinals))
        listed = ", ".join(str(o) for o in self.ordinals)
        super().__init__(f"Answers reference questions that were never asked: {listed}")


class IncompleteAnswerSet(GateError):
    """Some questions are unanswered and no skip directive was given."""

    def __init__(self, missing: Iterable[int]):
        self.missing = sorted(set(missing))
        listed = ", ".join(str(o) for o in self.missing)
        super().__init__(f"Questions still unanswered: {listed}")


class InvalidAnswer(GateError):
    """An answer value does not fit the question it targets."""

    def __init__(self, ordinal: int | None, value: str, reason: str):
        self.ordinal = ordinal
        self.value = value
        self.reason = reason
        target = f"question {ordinal}" if ordinal is not None else "answer"
        super().__init__(f"Invalid {target} value {value!r}: {reason}")


class InvalidTransition(GateError):
    """An operation was called in a state that does not allow it."""

    def __init__(self, state: str, operation: str):
        self.state = state
        self.operation = operation
        super().__init__(f"Cannot {operation} while conversation is {state}")


class ConversationNotFound(GateError):
    """No conversation exists for the given id."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")
