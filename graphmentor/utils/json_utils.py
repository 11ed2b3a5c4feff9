# utils/json_utils.py
import re
import json
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

# ```json { ... } ``` blocks embedded in free-form model output
JSON_FENCE_RE = re.compile(r"```json\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)

# LaTeX commands whose leading backslash json.loads would read as an escape
# (\frac -> form feed, \theta -> tab, \neq -> newline)
LATEX_COMMAND_RE = re.compile(
    r'(?<!\\)\\(?=[bfrt][A-Za-z]|n(?:e|eq|eg|abla|u|ot|otin|i|ewline)\b)'
)


def find_json_fences(text: str) -> List[str]:
    """Return the body of every ```json fence holding an object, in order of appearance."""
    if not text:
        return []
    return [m.group(1) for m in JSON_FENCE_RE.finditer(text)]


def escape_latex(text: str) -> str:
    """Double the backslash of LaTeX commands that collide with JSON escapes."""
    return LATEX_COMMAND_RE.sub(r'\\\\', text)


def repair_json(text: str) -> str:
    """
    Repair common LLM JSON malformations.
    - Removes trailing commas in arrays/objects.
    - Fixes invalid escape sequences by escaping lone backslashes
      (LaTeX such as \\sqrt inside graph expressions).
    """
    text = re.sub(r',\s*([}\]])', r'\1', text)
    text = re.sub(r'(?<!\\)\\(?!["\\/bfnrtu])', r'\\\\', text)
    return text.strip()


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse a fence body into a dict, trying a repaired copy on failure.
    Returns None when neither parse yields a JSON object.
    """
    text = escape_latex(text)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        repaired = repair_json(text)
        try:
            # raw newlines inside strings are kept rather than rejected
            parsed = json.loads(repaired, strict=False)
            logger.debug(f"JSON parsed after repair (first 100 chars): {repaired[:100]}...")
        except json.JSONDecodeError as e:
            truncated = text[:200] + "..." if len(text) > 200 else text
            logger.warning(f"JSON parse failed after repair: {e}. Raw (truncated): {truncated}")
            return None

    if not isinstance(parsed, dict):
        logger.warning(f"Expected JSON object, got {type(parsed).__name__}")
        return None
    return parsed
