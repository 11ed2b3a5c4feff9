# agents/prompt_composer.py
import base64
import binascii
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from graphmentor.config import ATTACHMENT_TEXT_LIMIT
from graphmentor.models.request_models import AttachmentData, HistoryTurn

logger = logging.getLogger(__name__)

CANVAS_TRIGGERS = ("@canvas",)
GRAPH_TRIGGERS = (
    "@graph", "graph", "plot", "equation", "function",
    "sine wave", "linear function", "quadratic", "trigonometric",
)
MCQ_TRIGGERS = ("@mcq", "generate mcqs")

SYSTEM_INSTRUCTION = """You are GraphMentor, an AI tutor specializing in mathematics, physics and computer science. Follow these rules:

1. For general questions:
   - Give concise, clear and engaging answers using markdown
   - Provide step-by-step solutions and use LaTeX for equations
2. For graphs, when the student asks for one or a concept benefits from visualization:
   - Generate Desmos-compatible expressions
   - Put them in a fenced JSON block exactly like:
```json
{"desmos_expressions": ["y=x^2"], "description": "Brief explanation of the graph"}
```
3. For @mcq requests:
   - Generate 3-5 high-quality multiple-choice questions
   - correctAnswer must be copied verbatim from options
   - Put them in a fenced JSON block exactly like:
```json
{"mcqs": [{"question": "...", "options": ["A", "B", "C", "D"], "correctAnswer": "B", "explanation": "..."}]}
```
4. For file attachments:
   - Summarize key points in bullet points
   - Extract important formulas and theorems
5. Today's date is {today}."""

GRAPH_INSTRUCTIONS = (
    "Graph instructions: include a ```json fenced block with a \"desmos_expressions\" array "
    "of Desmos-compatible expressions (for example \"y=x^2\" or \"y=\\\\sin(x)\", LaTeX backslashes "
    "doubled as in any JSON string) and a short \"description\" of what the graph shows."
)

CANVAS_INSTRUCTIONS = (
    "Canvas instructions: the attached image is the student's handwritten work from the canvas. "
    "Describe what they drew or wrote, check their reasoning step by step, point out any mistakes "
    "and suggest what to try next. Do not produce graph expressions unless asked."
)

DOCUMENT_INSTRUCTIONS = (
    "Document instructions: the student attached a document. Summarize it, list its key points "
    "as bullet points and extract any important formulas or theorems."
)

MCQ_INSTRUCTIONS = (
    "Quiz instructions: generate 3-5 multiple-choice questions and return them in a ```json fenced "
    "block with an \"mcqs\" array; each item needs \"question\", \"options\", \"correctAnswer\" "
    "(one of the options) and \"explanation\"."
)


def _contains_any(text: str, triggers) -> bool:
    low = text.lower()
    return any(t in low for t in triggers)


def wants_canvas(message: str) -> bool:
    return _contains_any(message, CANVAS_TRIGGERS)


def wants_graph(message: str) -> bool:
    return _contains_any(message, GRAPH_TRIGGERS)


def wants_mcqs(message: str) -> bool:
    return _contains_any(message, MCQ_TRIGGERS)


def build_system_instruction(today: Optional[date] = None) -> str:
    return SYSTEM_INSTRUCTION.replace("{today}", (today or date.today()).isoformat())


def describe_attachment(attachment: AttachmentData) -> str:
    """Inline marker for an image, or the leading text of a document."""
    if attachment.mime_type.startswith("image/"):
        return f"[Image attachment: {attachment.file_name}]"
    try:
        text = base64.b64decode(attachment.base64_data).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError) as e:
        logger.warning(f"Error decoding attachment {attachment.file_name}: {e}")
        return f"[Could not decode file: {attachment.file_name}]"
    return f"[File content]:\n{text[:ATTACHMENT_TEXT_LIMIT]}"


@dataclass
class ComposedPrompt:
    system_instruction: str
    user_message: str
    canvas: bool = False
    graph: bool = False
    mcq: bool = False
    document: bool = False
    elaborations: List[str] = field(default_factory=list)

    def combined_prompt(self) -> str:
        return f"{self.system_instruction}\n\n{self.user_message}"


def compose_prompt(
    message: str,
    canvas_data_url: Optional[str] = None,
    attachment: Optional[AttachmentData] = None,
    history: Optional[List[HistoryTurn]] = None,
    today: Optional[date] = None,
) -> ComposedPrompt:
    """
    Build the system instruction and the augmented user message.

    Elaborations are appended in a fixed order: graph, canvas (only when no
    graph was asked for), document, quiz; then the attachment content.
    """
    canvas = wants_canvas(message)
    graph = wants_graph(message)
    mcq = wants_mcqs(message)
    document = attachment is not None and not attachment.mime_type.startswith("image/")

    elaborations = []
    if graph:
        elaborations.append(GRAPH_INSTRUCTIONS)
    if canvas and not graph:
        elaborations.append(CANVAS_INSTRUCTIONS)
    if document:
        elaborations.append(DOCUMENT_INSTRUCTIONS)
    if mcq:
        elaborations.append(MCQ_INSTRUCTIONS)

    parts = [message, *elaborations]
    if attachment is not None:
        parts.append(describe_attachment(attachment))

    if canvas and not canvas_data_url:
        logger.info("Canvas requested but no canvas image was supplied")
    logger.info(
        f"Composed prompt: graph={graph} canvas={canvas} mcq={mcq} document={document} "
        f"history_turns={len(history or [])}"
    )

    return ComposedPrompt(
        system_instruction=build_system_instruction(today),
        user_message="\n\n".join(parts),
        canvas=canvas,
        graph=graph,
        mcq=mcq,
        document=document,
        elaborations=elaborations,
    )
