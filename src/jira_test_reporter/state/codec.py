from __future__ import annotations

"""
Tagged-union JSON codec for field templates.

Wire form of one template:
  {"type": "StringFields", "properties": {"fieldKey": "summary", "value": "..."}}

Decode policy: a template with an unknown discriminator or an invalid payload
fails on its own. It is logged and dropped, the remaining templates (and the
record holding them) still load.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from jira_test_reporter.errors import CorruptStateError
from jira_test_reporter.fields import FIELD_TYPES, FieldTemplate

logger = logging.getLogger(__name__)

TYPE_KEY = "type"
PROPERTIES_KEY = "properties"


def encode_template(template: FieldTemplate) -> Dict[str, Any]:
    return {TYPE_KEY: template.type_name, PROPERTIES_KEY: template.to_properties()}


def decode_template(raw: Any) -> FieldTemplate:
    """Decode one template; raises CorruptStateError on any failure."""
    if not isinstance(raw, dict):
        raise CorruptStateError(f"field template must be an object, got {type(raw).__name__}")
    type_name = str(raw.get(TYPE_KEY) or "")
    cls = FIELD_TYPES.get(type_name)
    if cls is None:
        raise CorruptStateError(f"unknown field template type '{type_name}'")
    props = raw.get(PROPERTIES_KEY)
    if not isinstance(props, dict):
        raise CorruptStateError(f"field template '{type_name}' has no properties object")
    try:
        return cls.model_validate(props)
    except ValidationError as ex:
        raise CorruptStateError(f"invalid '{type_name}' properties: {ex}") from ex


def encode_templates(templates: Iterable[FieldTemplate]) -> List[Dict[str, Any]]:
    return [encode_template(t) for t in templates]


def decode_templates(raw: Any, context: Optional[str] = None) -> List[FieldTemplate]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise CorruptStateError("field templates must be a list")
    out: List[FieldTemplate] = []
    for idx, item in enumerate(raw):
        try:
            out.append(decode_template(item))
        except CorruptStateError as ex:
            logger.error("ERROR: Skipping field template #%d%s: %s", idx, f" for {context}" if context else "", ex)
    return out
