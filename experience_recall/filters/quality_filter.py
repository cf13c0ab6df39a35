"""
Quality filter engine.

Filters are written as loose dicts and parsed into a small expression tree:

    {"mood": "closed"}                            -> mood contains "closed"
    {"mood": ["open", "curious"]}                 -> mood contains either
    {"embodied": {"present": False}}              -> embodied is absent
    {"$and": [...]}, {"$or": [...]}, {"$not": {...}}

Several quality keys in one dict are AND-combined. Value matching is a
case-insensitive substring check; values that name one of the older
single-word subtypes (e.g. mood "closed") also match the phrases those
subtypes were migrated to.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple, Union

from experience_recall.errors import QualityFilterError
from experience_recall.records.models import QUALITY_NAMES, ExperienceRecord

logger = logging.getLogger(__name__)

BOOLEAN_OPERATORS = ('$and', '$or', '$not')

# Older records used one-word subtypes; these are the phrases they became.
LEGACY_SUBTYPE_PHRASES: Dict[str, Dict[str, List[str]]] = {
    'embodied': {
        'thinking': ['mind processes', 'analytically', 'thoughts line up', 'thinking'],
        'sensing': ['feeling this', 'whole body', 'body knows', 'sensing', 'feeling'],
    },
    'focus': {
        'narrow': ['zeroing in', 'one specific thing', 'laser focus', 'narrow'],
        'broad': ['taking in everything', 'wide awareness', 'peripheral', 'broad'],
    },
    'mood': {
        'open': ['curious', 'receptive', 'welcoming', 'possibility', 'open'],
        'closed': ['shutting down', 'emotionally', 'closed off', 'withdrawn', 'closed'],
    },
    'purpose': {
        'goal': ['pushing toward', 'specific outcome', 'achievement', 'goal'],
        'wander': ['exploring', 'without direction', 'drifting', 'wander'],
    },
    'space': {
        'here': ['present in this space', 'fully here', 'grounded', 'here'],
        'there': ['mind is elsewhere', 'somewhere else', 'distant', 'there'],
    },
    'time': {
        'past': ['memories', 'pulling backward', 'remembering', 'past'],
        'future': ['anticipating', 'what comes next', 'forward', 'future'],
    },
    'presence': {
        'individual': ['navigating alone', 'by myself', 'solitary', 'individual'],
        'collective': ['shared experience', 'together', 'we', 'collective'],
    },
}


@dataclass(frozen=True)
class ValueFilter:
    """Quality is present and contains any of the values."""
    quality: str
    values: Tuple[str, ...]


@dataclass(frozen=True)
class PresenceFilter:
    quality: str
    present: bool


@dataclass(frozen=True)
class AndFilter:
    children: Tuple['QualityFilterExpression', ...]


@dataclass(frozen=True)
class OrFilter:
    children: Tuple['QualityFilterExpression', ...]


@dataclass(frozen=True)
class NotFilter:
    child: 'QualityFilterExpression'


QualityFilterExpression = Union[ValueFilter, PresenceFilter, AndFilter, OrFilter, NotFilter]


def parse_quality_filter(raw: Any) -> QualityFilterExpression:
    """
    Parse a loose filter dict into an expression tree.

    Args:
        raw: Filter dictionary

    Returns:
        Parsed expression

    Raises:
        QualityFilterError: On the first structural problem found; the message
            names the offending path (e.g. '$and[1].mood')
    """
    return _parse(raw, '')


def validate_quality_filter(raw: Any) -> List[str]:
    """
    Collect every problem in a filter dict without raising.

    Returns:
        List of error messages; empty when the filter is valid
    """
    errors: List[str] = []
    _collect_errors(raw, '', errors)
    return errors


def evaluate_quality_filter(record: ExperienceRecord, expression: QualityFilterExpression) -> bool:
    """
    Evaluate an expression against a record.

    Args:
        record: Record to test
        expression: Parsed filter expression

    Returns:
        True when the record matches

    Raises:
        QualityFilterError: If expression is not a filter expression
    """
    if isinstance(expression, ValueFilter):
        quality = record.quality(expression.quality)
        if not quality.present:
            return False
        return any(
            quality.contains(pattern)
            for value in expression.values
            for pattern in _value_patterns(expression.quality, value)
        )

    if isinstance(expression, PresenceFilter):
        return record.quality(expression.quality).present == expression.present

    if isinstance(expression, AndFilter):
        return all(evaluate_quality_filter(record, child) for child in expression.children)

    if isinstance(expression, OrFilter):
        return any(evaluate_quality_filter(record, child) for child in expression.children)

    if isinstance(expression, NotFilter):
        return not evaluate_quality_filter(record, expression.child)

    raise QualityFilterError(
        f"Not a quality filter expression: {type(expression).__name__}"
    )


def describe_quality_filter(expression: QualityFilterExpression) -> str:
    """Render an expression in infix form, e.g. '(mood.closed AND embodied present)'."""
    if isinstance(expression, PresenceFilter):
        return f"{expression.quality} {'present' if expression.present else 'absent'}"
    if isinstance(expression, ValueFilter):
        if len(expression.values) == 1:
            return f"{expression.quality}.{expression.values[0]}"
        return f"{expression.quality} ({' OR '.join(expression.values)})"
    if isinstance(expression, AndFilter):
        return '(' + ' AND '.join(describe_quality_filter(c) for c in expression.children) + ')'
    if isinstance(expression, OrFilter):
        return '(' + ' OR '.join(describe_quality_filter(c) for c in expression.children) + ')'
    if isinstance(expression, NotFilter):
        return f"NOT ({describe_quality_filter(expression.child)})"
    raise QualityFilterError(
        f"Not a quality filter expression: {type(expression).__name__}"
    )


def _value_patterns(quality: str, value: str) -> List[str]:
    return LEGACY_SUBTYPE_PHRASES.get(quality, {}).get(value.lower(), [value])


def _join(path: str, key: str) -> str:
    return f"{path}.{key}" if path else key


def _parse(raw: Any, path: str) -> QualityFilterExpression:
    where = path or 'filter'
    if not isinstance(raw, dict):
        raise QualityFilterError(f"{where}: filter must be an object, got {type(raw).__name__}")
    if not raw:
        raise QualityFilterError(f"{where}: empty filter")

    parts: List[QualityFilterExpression] = []
    for key, value in raw.items():
        if not isinstance(key, str):
            raise QualityFilterError(f"{where}: filter keys must be strings, got {type(key).__name__}")
        key_path = _join(path, key)
        if key.startswith('$'):
            parts.append(_parse_operator(key, value, key_path))
        elif key in QUALITY_NAMES:
            parts.append(_parse_quality(key, value, key_path))
        else:
            raise QualityFilterError(
                f"{key_path}: unknown quality '{key}' (expected one of {', '.join(QUALITY_NAMES)})"
            )

    if len(parts) == 1:
        return parts[0]
    return AndFilter(tuple(parts))


def _parse_operator(operator: str, value: Any, path: str) -> QualityFilterExpression:
    if operator in ('$and', '$or'):
        if not isinstance(value, list):
            raise QualityFilterError(f"{path}: {operator} requires a list of filters")
        if not value:
            raise QualityFilterError(f"{path}: {operator} requires at least one filter")
        children = tuple(_parse(item, f"{path}[{i}]") for i, item in enumerate(value))
        return AndFilter(children) if operator == '$and' else OrFilter(children)

    if operator == '$not':
        if not isinstance(value, dict):
            raise QualityFilterError(f"{path}: $not requires a filter object")
        return NotFilter(_parse(value, path))

    raise QualityFilterError(
        f"{path}: unknown operator '{operator}' (expected one of {', '.join(BOOLEAN_OPERATORS)})"
    )


def _parse_quality(quality: str, value: Any, path: str) -> QualityFilterExpression:
    if isinstance(value, str):
        if not value:
            raise QualityFilterError(f"{path}: value must be a non-empty string")
        return ValueFilter(quality, (value,))

    if isinstance(value, list):
        if not value:
            raise QualityFilterError(f"{path}: value list must not be empty")
        for i, item in enumerate(value):
            if not isinstance(item, str):
                raise QualityFilterError(f"{path}[{i}]: list items must be strings")
            if not item:
                raise QualityFilterError(f"{path}[{i}]: value must be a non-empty string")
        return ValueFilter(quality, tuple(value))

    if isinstance(value, dict):
        if 'present' not in value:
            raise QualityFilterError(f"{path}: object filter must be {{\"present\": true|false}}")
        extra = sorted(str(k) for k in value if k != 'present')
        if extra:
            raise QualityFilterError(
                f"{path}: presence filter does not accept extra keys: {', '.join(extra)}"
            )
        if not isinstance(value['present'], bool):
            raise QualityFilterError(f"{path}.present: must be a boolean")
        return PresenceFilter(quality, value['present'])

    raise QualityFilterError(
        f"{path}: expected a string, list of strings or {{\"present\": bool}}, "
        f"got {type(value).__name__}"
    )


def _collect_errors(raw: Any, path: str, errors: List[str]) -> None:
    where = path or 'filter'
    if not isinstance(raw, dict):
        errors.append(f"{where}: filter must be an object, got {type(raw).__name__}")
        return
    if not raw:
        errors.append(f"{where}: empty filter")
        return

    for key, value in raw.items():
        if not isinstance(key, str):
            errors.append(f"{where}: filter keys must be strings, got {type(key).__name__}")
            continue
        key_path = _join(path, key)
        if key in ('$and', '$or'):
            if not isinstance(value, list):
                errors.append(f"{key_path}: {key} requires a list of filters")
            elif not value:
                errors.append(f"{key_path}: {key} requires at least one filter")
            else:
                for i, item in enumerate(value):
                    _collect_errors(item, f"{key_path}[{i}]", errors)
        elif key == '$not':
            if not isinstance(value, dict):
                errors.append(f"{key_path}: $not requires a filter object")
            else:
                _collect_errors(value, key_path, errors)
        elif key.startswith('$') or key in QUALITY_NAMES:
            try:
                if key.startswith('$'):
                    _parse_operator(key, value, key_path)
                else:
                    _parse_quality(key, value, key_path)
            except QualityFilterError as e:
                errors.append(str(e))
        else:
            errors.append(
                f"{key_path}: unknown quality '{key}' (expected one of {', '.join(QUALITY_NAMES)})"
            )
