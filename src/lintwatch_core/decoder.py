"""Decode lint service payloads into FileLintResult records.

The service answers every request with a JSON array of ESLint result objects
(one per submitted file) serialized into a string. An empty string means the
file is clean.
"""

import json
import logging
from typing import Any

from lintwatch_core.errors import DecodeError
from lintwatch_core.models import DiagnosticMessage, FileLintResult, Fix, Severity

logger = logging.getLogger(__name__)


def decode(raw: str | bytes | None) -> list[FileLintResult]:
    """Decode a payload, treating anything malformed as "no diagnostics".

    Args:
        raw: Payload returned by the lint service

    Returns:
        Decoded results; empty for clean files and for malformed payloads
    """
    try:
        return parse_payload(raw)
    except DecodeError as e:
        logger.error(f"Error occurred while parsing server response: {e}")
        return []


def parse_payload(raw: str | bytes | None) -> list[FileLintResult]:
    """Strictly decode a payload.

    Raises:
        DecodeError: If the payload is not a JSON array of result objects
    """
    if raw is None:
        return []
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"payload is not valid UTF-8: {e}") from e
    if not raw.strip():
        return []

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as e:
        raise DecodeError(f"payload is not valid JSON: {e}") from e

    if not isinstance(document, list):
        raise DecodeError(f"expected a list of results, got {type(document).__name__}")

    return [_parse_result(entry, index) for index, entry in enumerate(document)]


def first_result(results: list[FileLintResult]) -> FileLintResult | None:
    """Return the result for the submitted file, if the service sent one."""
    return results[0] if results else None


def _parse_result(entry: Any, index: int) -> FileLintResult:
    if not isinstance(entry, dict):
        raise DecodeError(f"result[{index}] must be an object")

    raw_messages = entry.get("messages") or []
    if not isinstance(raw_messages, list):
        raise DecodeError(f"result[{index}].messages must be a list")
    parsed = []
    for pos, item in enumerate(raw_messages):
        try:
            parsed.append(_parse_message(item, f"result[{index}].messages[{pos}]"))
        except DecodeError as e:
            logger.warning(f"Skipping unreadable diagnostic: {e}")
    messages = tuple(parsed)

    errors = sum(1 for m in messages if m.severity is Severity.ERROR)
    warnings = len(messages) - errors

    return FileLintResult(
        file_path=str(entry.get("filePath") or ""),
        messages=messages,
        error_count=_int_field(entry, "errorCount", errors, f"result[{index}]"),
        warning_count=_int_field(entry, "warningCount", warnings, f"result[{index}]"),
        fixable_error_count=_int_field(entry, "fixableErrorCount", 0, f"result[{index}]"),
        fixable_warning_count=_int_field(entry, "fixableWarningCount", 0, f"result[{index}]"),
    )


def _parse_message(item: Any, where: str) -> DiagnosticMessage:
    if not isinstance(item, dict):
        raise DecodeError(f"{where} must be an object")

    try:
        severity = Severity(item.get("severity"))
    except ValueError as e:
        raise DecodeError(f"{where}.severity must be 1 or 2, got {item.get('severity')!r}") from e

    rule_id = item.get("ruleId")
    if rule_id is not None and not isinstance(rule_id, str):
        raise DecodeError(f"{where}.ruleId must be a string or null")

    return DiagnosticMessage(
        rule_id=rule_id,
        severity=severity,
        message=str(item.get("message", "")),
        line=_int_field(item, "line", 0, where),
        column=_int_field(item, "column", 0, where),
        node_type=item.get("nodeType"),
        end_line=_optional_int(item, "endLine", where),
        end_column=_optional_int(item, "endColumn", where),
        fix=_parse_fix(item.get("fix"), where),
        message_id=item.get("messageId"),
        fatal=bool(item.get("fatal", False)),
    )


def _parse_fix(raw: Any, where: str) -> Fix | None:
    if not raw:
        return None
    if not isinstance(raw, dict):
        raise DecodeError(f"{where}.fix must be an object")
    span = raw.get("range")
    if not (isinstance(span, list) and len(span) == 2 and all(isinstance(v, int) for v in span)):
        raise DecodeError(f"{where}.fix.range must be a pair of integers")
    return Fix(range=(span[0], span[1]), text=str(raw.get("text", "")))


def _int_field(data: dict[str, Any], key: str, default: int, where: str) -> int:
    value = data.get(key)
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"{where}.{key} must be an integer")
    return value


def _optional_int(data: dict[str, Any], key: str, where: str) -> int | None:
    if data.get(key) is None:
        return None
    return _int_field(data, key, 0, where)
