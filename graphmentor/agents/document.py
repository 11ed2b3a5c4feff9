# agents/document.py
import io
import logging
from typing import Callable, Dict

import docx
import fitz  # PyMuPDF
import openpyxl

from graphmentor.config import DOCUMENT_PROMPT_LIMIT
from graphmentor.errors import UnsupportedType
from graphmentor.services.llm_client import ModelClient

logger = logging.getLogger(__name__)

SUMMARY_PROMPT = """You are an educational AI assistant focused on helping students understand their documents:

- Provide a clear, concise summary of the document
- Highlight key concepts and important takeaways
- Break down complex ideas into digestible explanations
- Offer potential study strategies or additional context
- Use markdown formatting for better readability"""

PRESENTATION_PLACEHOLDER = "PowerPoint parsing not yet implemented"


def extract_pdf_text(data: bytes) -> str:
    """Page texts joined by newlines."""
    with fitz.open(stream=data, filetype="pdf") as doc:
        return "\n".join(page.get_text() for page in doc)


def extract_docx_text(data: bytes) -> str:
    document = docx.Document(io.BytesIO(data))
    return "\n".join(p.text for p in document.paragraphs if p.text)


def extract_sheet_text(data: bytes) -> str:
    """Tab-separated rows, one block per sheet."""
    workbook = openpyxl.load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    output = ""
    try:
        for sheet in workbook.worksheets:
            output += f"Sheet: {sheet.title}\n"
            for row in sheet.iter_rows(values_only=True):
                output += "\t".join("" if v is None else str(v) for v in row) + "\n"
            output += "\n"
    finally:
        workbook.close()
    return output


def extract_presentation_text(data: bytes) -> str:
    return PRESENTATION_PLACEHOLDER


EXTRACTORS: Dict[str, Callable[[bytes], str]] = {
    "pdf": extract_pdf_text,
    "docx": extract_docx_text,
    "xlsx": extract_sheet_text,
    "xls": extract_sheet_text,
    "ppt": extract_presentation_text,
    "pptx": extract_presentation_text,
}


def file_extension(file_name: str) -> str:
    return file_name.rsplit(".", 1)[-1].lower() if "." in file_name else ""


def extract_text(file_name: str, data: bytes) -> str:
    """Pick the parser by file extension; raises UnsupportedType for anything else."""
    ext = file_extension(file_name)
    extractor = EXTRACTORS.get(ext)
    if extractor is None:
        raise UnsupportedType("Unsupported file type")
    text = extractor(data)
    logger.info(f"Extracted {len(text)} chars from {file_name}")
    return text


async def summarize_document(client: ModelClient, text: str) -> str:
    prompt = f"{SUMMARY_PROMPT}\n\nDocument Content:\n{text[:DOCUMENT_PROMPT_LIMIT]}"
    return await client.generate(prompt)
