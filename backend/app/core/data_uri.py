"""Data URI handling for images that cross the API boundary as text."""

import base64
import binascii


class DataURIError(ValueError):
    pass


def split_data_uri(data_uri: str) -> tuple[str, str]:
    """Split `data:<mime>;base64,<payload>` into (mime_type, payload). Raises DataURIError if malformed."""
    if not data_uri.startswith("data:") or ";" not in data_uri or "," not in data_uri:
        raise DataURIError("Image data must be a data URI: data:<mime>;base64,<payload>")

    mime_type = data_uri.split(";", 1)[0].split(":", 1)[1]
    payload = data_uri.split(",", 1)[1]
    if not mime_type or not payload:
        raise DataURIError("Image data URI is missing its media type or payload")
    return mime_type, payload


def decode_data_uri(data_uri: str) -> tuple[str, bytes]:
    """Return (mime_type, raw bytes) for a base64 data URI."""
    mime_type, payload = split_data_uri(data_uri)
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise DataURIError(f"Image payload is not valid base64: {e}") from e
    return mime_type, data
