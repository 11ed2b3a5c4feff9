# services/attachments.py
"""
Attachment encoder.

Turns user-selected bytes into a transport-ready base64 payload, enforcing
the size limit and the allowed MIME types. The client uses the strict image
whitelist; the chat route validates incoming payloads with the permissive set.
"""
import base64
import binascii
import logging
from typing import BinaryIO, Union

from graphmentor.config import MAX_ATTACHMENT_BYTES
from graphmentor.errors import FileReadError, FileTooLarge, UnsupportedType
from graphmentor.models.chat import Attachment

logger = logging.getLogger(__name__)

IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp"}

DOCUMENT_TYPES = {
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-excel",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "text/plain",
    "text/markdown",
    "text/csv",
}


def allowed_types(strict: bool = True) -> set:
    return IMAGE_TYPES if strict else IMAGE_TYPES | DOCUMENT_TYPES


def check_attachment(size: int, mime_type: str, strict: bool = True) -> None:
    if size > MAX_ATTACHMENT_BYTES:
        raise FileTooLarge(
            "File too large",
            details=f"Please upload a file smaller than {MAX_ATTACHMENT_BYTES // (1024 * 1024)}MB.",
        )
    if (mime_type or "").lower() not in allowed_types(strict):
        hint = "Please upload an image file (JPEG, PNG, WEBP)." if strict else f"Type '{mime_type}' is not supported."
        raise UnsupportedType("Unsupported file type", details=hint)


def encode_file(name: str, data: Union[bytes, BinaryIO], mime_type: str, strict: bool = True) -> Attachment:
    """Validate and base64-encode a selected file."""
    if not isinstance(data, (bytes, bytearray)):
        try:
            data = data.read()
        except OSError as e:
            logger.error(f"Failed to read attachment {name}: {e}")
            raise FileReadError("File Error", details="Failed to read the file.")

    check_attachment(len(data), mime_type, strict=strict)

    encoded = base64.b64encode(bytes(data)).decode("ascii")
    if not encoded:
        raise FileReadError("File Error", details="Failed to extract base64 data")

    logger.info(f"Encoded attachment {name} ({mime_type}, {len(data)} bytes)")
    return Attachment(name=name, mime_type=mime_type.lower(), encoded_data=encoded)


def decode_attachment(name: str, encoded_data: str, mime_type: str, strict: bool = False) -> bytes:
    """Validate a base64 payload received over the wire and return its bytes."""
    try:
        raw = base64.b64decode(encoded_data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FileReadError("File Error", details=f"Could not decode {name}: {e}")
    check_attachment(len(raw), mime_type, strict=strict)
    return raw


def to_data_url(attachment: Attachment) -> str:
    return f"data:{attachment.mime_type};base64,{attachment.encoded_data}"
