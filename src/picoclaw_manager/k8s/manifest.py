"""Multi-document manifest stream parsing."""

import json
import re

import structlog
import yaml

from picoclaw_manager.k8s.types import ManifestDocument
from picoclaw_manager.utils.exceptions import ManifestParseError

logger = structlog.get_logger()

# A document separator is a line starting with "---", optionally followed by
# whitespace or a comment.
_SEPARATOR = re.compile(r"^---(?:\s+(?P<rest>.*))?$")

_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class ManifestLoader(yaml.SafeLoader):
    """SafeLoader that leaves unquoted timestamps as strings.

    Documents are sent to the API server as JSON, which has no date type.
    """


ManifestLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != _TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def split_documents(stream: bytes | str) -> list[str]:
    """Split a manifest stream into raw document texts.

    Whitespace is trimmed and empty documents are dropped.

    Raises:
        ManifestParseError: If the stream is not UTF-8, or a separator line
            carries content other than a comment
    """
    if isinstance(stream, bytes):
        try:
            stream = stream.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ManifestParseError(f"Manifest stream is not valid UTF-8: {e}") from e

    documents: list[str] = []
    current: list[str] = []
    for lineno, line in enumerate(stream.splitlines(), start=1):
        match = _SEPARATOR.match(line)
        if match:
            rest = (match.group("rest") or "").strip()
            if rest and not rest.startswith("#"):
                raise ManifestParseError(
                    f"Line {lineno}: unexpected content after document separator"
                )
            documents.append("\n".join(current))
            current = []
        else:
            current.append(line)
    documents.append("\n".join(current))

    return [doc.strip() for doc in documents if doc.strip() and doc.strip() != "---"]


def parse_manifest_stream(stream: bytes | str) -> list[ManifestDocument]:
    """Parse a manifest stream into resource documents, in stream order.

    Documents that decode to nothing (comments only) or declare no ``kind``
    are skipped.

    Raises:
        ManifestParseError: If a document is not valid YAML, not a mapping,
            or holds values with no JSON form (e.g. ``!!binary``)
    """
    parsed: list[ManifestDocument] = []

    for index, text in enumerate(split_documents(stream)):
        try:
            body = yaml.load(text, Loader=ManifestLoader)
        except yaml.YAMLError as e:
            raise ManifestParseError(f"Document {index} is not valid YAML: {e}") from e

        if body is None:
            continue
        if not isinstance(body, dict):
            raise ManifestParseError(
                f"Document {index} must be a mapping, got {type(body).__name__}"
            )
        try:
            json.dumps(body)
        except (TypeError, ValueError) as e:
            raise ManifestParseError(f"Document {index} cannot be encoded as JSON: {e}") from e

        document = ManifestDocument.from_body(body)
        if not document.kind:
            logger.debug("manifest_document_skipped", index=index, reason="empty_kind")
            continue
        parsed.append(document)

    return parsed
