"""
Interactive question extraction from completed tool calls.

Some tool results ask the UI to prompt the user: `ask_question` carries the
questions in its input, and the connection manager returns authorization
links for integrations that still need the user. Anything unexpected simply
yields no questions.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ConfigDict, Field, TypeAdapter, ValidationError

from core.constants import ASK_QUESTION_TOOL, CONNECTION_STATUS_INITIATED, MANAGE_CONNECTIONS_TOOL
from core.logger import UnifiedLogger

from .models import AssistantMessage, ConversationMessage, ToolCallPart, TranscriptModel


logger = UnifiedLogger(tag="question-extractor")


class ChoiceQuestion(TranscriptModel):
    # Descriptor keys this model does not name pass through to the UI untouched.
    model_config = ConfigDict(extra="allow")

    text: str
    type: Literal["single_choice", "multiple_choice"]
    options: Tuple[str, ...]


class TextFieldQuestion(TranscriptModel):
    model_config = ConfigDict(extra="allow")

    text: str
    type: Literal["text_field"] = "text_field"
    placeholder: Optional[str] = None
    multiline: Optional[bool] = None


class ConnectionQuestion(TranscriptModel):
    type: Literal["connection_card"] = "connection_card"
    toolkit: str
    redirect_url: str
    connection_id: Optional[str] = None
    name: Optional[str] = None


Question = Annotated[
    Union[ChoiceQuestion, TextFieldQuestion, ConnectionQuestion],
    Field(discriminator="type"),
]


class ConnectionResult(TranscriptModel):
    """One toolkit entry in a connection manager result."""

    toolkit: str
    status: str
    redirect_url: Optional[str] = Field(default=None, alias="redirect_url")
    connection_id: Optional[str] = Field(default=None, alias="connection_id")


_questions_adapter: TypeAdapter[Tuple[Question, ...]] = TypeAdapter(Tuple[Question, ...])
_connection_results_adapter: TypeAdapter[Dict[str, ConnectionResult]] = TypeAdapter(
    Dict[str, ConnectionResult]
)


def _ask_question_questions(tool_input: Any) -> Tuple[Question, ...]:
    if not isinstance(tool_input, Mapping):
        return ()
    questions = tool_input.get("questions")
    if not isinstance(questions, list):
        return ()
    try:
        return _questions_adapter.validate_python(questions)
    except ValidationError as exc:
        logger.warning(
            "Ignoring malformed ask_question input",
            error_count=exc.error_count(),
        )
        return ()


def _connection_questions(tool_output: Any) -> Tuple[ConnectionQuestion, ...]:
    if not isinstance(tool_output, Mapping):
        return ()
    data = tool_output.get("data")
    if not isinstance(data, Mapping):
        return ()
    results = data.get("results")
    if results is None:
        return ()
    try:
        connections = _connection_results_adapter.validate_python(results)
    except ValidationError as exc:
        logger.warning(
            "Ignoring malformed connection manager output",
            error_count=exc.error_count(),
        )
        return ()

    questions: List[ConnectionQuestion] = []
    for result in connections.values():
        # Active connections and entries without a link need nothing from the user
        if result.status != CONNECTION_STATUS_INITIATED or not result.redirect_url:
            continue
        questions.append(
            ConnectionQuestion(
                toolkit=result.toolkit,
                redirect_url=result.redirect_url,
                connection_id=result.connection_id,
                name=result.toolkit,
            )
        )
    return tuple(questions)


def extract_questions(
    tool_name: str,
    tool_input: Optional[Mapping[str, Any]],
    tool_output: Optional[Mapping[str, Any]],
) -> Tuple[Question, ...]:
    """
    Derive interactive questions from one tool call.

    Args:
        tool_name: Name of the tool that was called
        tool_input: Arguments the model passed to the tool
        tool_output: Result returned by the tool

    Returns:
        Questions in display order; empty when the tool is not interactive or
        its payload is malformed.
    """
    if tool_name == ASK_QUESTION_TOOL:
        return _ask_question_questions(tool_input)
    if tool_name == MANAGE_CONNECTIONS_TOOL:
        return _connection_questions(tool_output)
    return ()


def find_trailing_tool_call(message: AssistantMessage) -> Optional[ToolCallPart]:
    """Return the last tool-call part of a message, skipping any text after it."""
    for part in reversed(message.parts):
        if isinstance(part, ToolCallPart):
            return part
    return None


def get_questions(conversation: Sequence[ConversationMessage]) -> Tuple[Question, ...]:
    """Questions the UI should show for the current end of a transcript."""
    if not conversation:
        return ()
    last_message = conversation[-1]
    if not isinstance(last_message, AssistantMessage):
        return ()
    tool_call = find_trailing_tool_call(last_message)
    if tool_call is None:
        return ()
    return extract_questions(tool_call.tool_name, tool_call.input, tool_call.output)
