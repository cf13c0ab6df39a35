"""
Filters Module

Boolean quality filter DSL: parsing, validation, evaluation and description.
"""

from .quality_filter import (
    AndFilter,
    NotFilter,
    OrFilter,
    PresenceFilter,
    QualityFilterExpression,
    ValueFilter,
    describe_quality_filter,
    evaluate_quality_filter,
    parse_quality_filter,
    validate_quality_filter,
)

__all__ = [
    'AndFilter',
    'NotFilter',
    'OrFilter',
    'PresenceFilter',
    'QualityFilterExpression',
    'ValueFilter',
    'describe_quality_filter',
    'evaluate_quality_filter',
    'parse_quality_filter',
    'validate_quality_filter',
]
