# agents/extractor.py
"""
Structured-output extractor.

Scans a model reply for ```json fences and pulls out Desmos expression lists
and multiple-choice questions. Parsing is best-effort: malformed fences and
malformed entries are logged and skipped, never raised. When a reply holds
several fences carrying the same key, the last one wins.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from graphmentor.models.chat import McqData
from graphmentor.utils.json_utils import find_json_fences, parse_json_object

logger = logging.getLogger(__name__)

DESMOS_KEY = "desmos_expressions"
MCQ_KEY = "mcqs"


@dataclass
class StructuredReply:
    reply: str
    desmos_expressions: Optional[List[str]] = None
    mcqs: Optional[List[McqData]] = None


def _json_blocks(text: str) -> List[Dict[str, Any]]:
    blocks = []
    for body in find_json_fences(text):
        parsed = parse_json_object(body)
        if parsed is not None:
            blocks.append(parsed)
    return blocks


def _clean_expressions(raw: List[Any]) -> List[str]:
    expressions = []
    for expr in raw:
        # some replies wrap each expression as {"latex": "..."}
        if isinstance(expr, dict) and isinstance(expr.get("latex"), str):
            expr = expr["latex"]
        if isinstance(expr, str) and expr.strip():
            expressions.append(expr)
    return expressions


def _clean_mcqs(raw: List[Any]) -> List[McqData]:
    mcqs = []
    for i, item in enumerate(raw):
        if not isinstance(item, dict):
            logger.warning(f"Skipping MCQ #{i}: not an object")
            continue
        try:
            mcq = McqData(
                question=item.get("question"),
                options=item.get("options"),
                correct_answer=item.get("correctAnswer"),
                explanation=item.get("explanation"),
            )
        except ValidationError as e:
            logger.warning(f"Skipping malformed MCQ #{i}: {e.error_count()} problem(s)")
            continue
        mcqs.append(mcq)
    return mcqs


def extract_desmos_expressions(text: str) -> Optional[List[str]]:
    found = None
    for block in _json_blocks(text):
        raw = block.get(DESMOS_KEY)
        if isinstance(raw, list):
            found = _clean_expressions(raw)
    return found


def extract_mcqs(text: str) -> Optional[List[McqData]]:
    found = None
    for block in _json_blocks(text):
        raw = block.get(MCQ_KEY)
        if isinstance(raw, list):
            mcqs = _clean_mcqs(raw)
            if mcqs:
                found = mcqs
    return found


def extract_structured(text: str) -> StructuredReply:
    result = StructuredReply(
        reply=text,
        desmos_expressions=extract_desmos_expressions(text),
        mcqs=extract_mcqs(text),
    )
    logger.info(
        f"Extracted {len(result.desmos_expressions or [])} graph expression(s), "
        f"{len(result.mcqs or [])} MCQ(s)"
    )
    return result
