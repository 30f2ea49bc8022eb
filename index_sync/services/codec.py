"""Decoding of stored objects and object keys into indexable documents."""

import json

from pydantic import ValidationError

from ..schemas.document import IndexedDocument

KEY_SEPARATOR = "/"


class DocumentDecodeError(Exception):
    """Raised when a stored object or object key cannot be decoded."""

    pass


def decode_document(raw: bytes) -> IndexedDocument:
    """
    Decode the serialized body of a stored object.

    Args:
        raw: Object body as returned by the object store (UTF-8 JSON)

    Returns:
        The decoded document

    Raises:
        DocumentDecodeError: If the body is not a JSON object carrying
            libraryID, key and version
    """
    try:
        data = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise DocumentDecodeError(f"Object body is not valid JSON: {str(e)}") from e

    if not isinstance(data, dict):
        raise DocumentDecodeError(
            f"Object body must be a JSON object, got {type(data).__name__}"
        )

    try:
        return IndexedDocument.model_validate(data)
    except ValidationError as e:
        raise DocumentDecodeError(f"Invalid document: {str(e)}") from e


def split_storage_key(key: str) -> tuple[int, str]:
    """
    Split an object key of the form <libraryID>/<key>.

    Only the first separator splits; the remainder is the document key.

    Raises:
        DocumentDecodeError: If the key does not have two non-empty parts or
            the library part is not an integer
    """
    parts = key.split(KEY_SEPARATOR, 1)
    if len(parts) != 2 or not parts[0] or not parts[1]:
        raise DocumentDecodeError(f"Malformed object key: {key!r}")

    library_part, doc_key = parts
    try:
        library_id = int(library_part)
    except ValueError as e:
        raise DocumentDecodeError(f"Malformed library id in object key: {key!r}") from e

    return library_id, doc_key
