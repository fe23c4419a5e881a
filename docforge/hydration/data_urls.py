"""
Data URL encoding helpers.

Legacy documents carried attachments inline as data URLs, and backup
bundles still embed asset payloads in this form.
"""

import base64
import binascii
from typing import Tuple
from urllib.parse import unquote_to_bytes

from ..exceptions import InvalidFormatError


def is_data_url(value: str) -> bool:
    """Whether a string is an inline data URL."""
    return isinstance(value, str) and value.startswith("data:")


def encode_data_url(data: bytes, mime_type: str) -> str:
    """
    Encode a binary payload as a base64 data URL.

    Args:
        data: The raw bytes
        mime_type: MIME type to declare

    Returns:
        A string of the form data:<mime>;base64,<payload>
    """
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type or 'application/octet-stream'};base64,{payload}"


def decode_data_url(url: str) -> Tuple[str, bytes]:
    """
    Decode a data URL into its MIME type and payload.

    Args:
        url: A data URL (base64 or percent-encoded)

    Returns:
        Tuple of (mime_type, data)

    Raises:
        InvalidFormatError: If the URL is not a well-formed data URL
    """
    if not is_data_url(url) or "," not in url:
        raise InvalidFormatError("Not a data URL")

    header, payload = url[len("data:"):].split(",", 1)
    params = header.split(";")
    mime_type = params[0] or "text/plain"

    if "base64" in params[1:]:
        try:
            return mime_type, base64.b64decode("".join(payload.split()), validate=True)
        except (binascii.Error, ValueError) as e:
            raise InvalidFormatError(f"Malformed base64 payload: {e}") from e

    return mime_type, unquote_to_bytes(payload)
