import pytest

from experience_recall.errors import QualityFilterError, ValidationError
from experience_recall.filters import (
    AndFilter,
    NotFilter,
    OrFilter,
    PresenceFilter,
    ValueFilter,
    describe_quality_filter,
    evaluate_quality_filter,
    parse_quality_filter,
    validate_quality_filter,
)


def test_parse_single_value_and_list():
    assert parse_quality_filter({'mood': 'closed'}) == ValueFilter('mood', ('closed',))
    assert parse_quality_filter({'mood': ['open', 'curious']}) == ValueFilter('mood', ('open', 'curious'))


def test_parse_presence_and_implicit_and():
    expr = parse_quality_filter({'mood': 'closed', 'embodied': {'present': True}})
    assert expr == AndFilter((ValueFilter('mood', ('closed',)), PresenceFilter('embodied', True)))


def test_parse_boolean_operators():
    expr = parse_quality_filter({
        '$or': [{'mood': 'open'}, {'$not': {'focus': {'present': False}}}],
    })
    assert isinstance(expr, OrFilter)
    assert expr.children[0] == ValueFilter('mood', ('open',))
    assert expr.children[1] == NotFilter(PresenceFilter('focus', False))


def test_operator_mixed_with_sibling_keys_is_and_combined():
    expr = parse_quality_filter({'$or': [{'mood': 'open'}], 'time': {'present': True}})
    assert isinstance(expr, AndFilter)
    assert len(expr.children) == 2


@pytest.mark.parametrize('raw, fragment', [
    ('mood', 'must be an object'),
    ({}, 'empty filter'),
    ({'color': 'red'}, "unknown quality 'color'"),
    ({'$xor': []}, "unknown operator '$xor'"),
    ({'$and': []}, 'at least one filter'),
    ({'$or': {'mood': 'open'}}, 'requires a list'),
    ({'$not': ['mood']}, 'requires a filter object'),
    ({'mood': {'present': 'yes'}}, 'must be a boolean'),
    ({'mood': {'present': True, 'value': 'x'}}, 'extra keys'),
    ({'mood': []}, 'must not be empty'),
    ({'mood': ['open', 3]}, 'list items must be strings'),
    ({'mood': ''}, 'non-empty string'),
    ({'mood': 5}, 'expected a string'),
    ({1: 'open'}, 'filter keys must be strings, got int'),
    ({'$not': {None: 'x'}}, 'filter keys must be strings, got NoneType'),
    ({'mood': {'present': True, 2: 'x', 'value': 'y'}}, 'extra keys: 2, value'),
])
def test_parse_errors(raw, fragment):
    with pytest.raises(QualityFilterError) as exc_info:
        parse_quality_filter(raw)
    assert fragment in str(exc_info.value)


def test_error_names_nested_path():
    with pytest.raises(QualityFilterError) as exc_info:
        parse_quality_filter({'$and': [{'mood': 'open'}, {'mood': 7}]})
    assert '$and[1].mood' in str(exc_info.value)


def test_quality_filter_error_is_validation_error():
    with pytest.raises(ValidationError):
        parse_quality_filter({'nope': 'x'})


def test_validate_collects_all_problems():
    errors = validate_quality_filter({'color': 'red', 'mood': 5, '$and': [{'focus': ''}]})
    assert len(errors) == 3
    assert any('color' in e for e in errors)
    assert any('$and[0].focus' in e for e in errors)


def test_validate_reports_non_string_keys():
    errors = validate_quality_filter({1: 'open', 'mood': 'calm', '$or': [{(2, 3): 'x'}]})
    assert errors == [
        'filter: filter keys must be strings, got int',
        '$or[0]: filter keys must be strings, got tuple',
    ]


def test_validate_accepts_valid_filter():
    assert validate_quality_filter({'mood': 'open', '$not': {'time': {'present': True}}}) == []


def test_closed_mood_with_absent_embodied_does_not_match(make_record):
    record = make_record('r1', mood='feeling closed off')
    expr = parse_quality_filter({'mood': 'closed', 'embodied': {'present': True}})
    assert evaluate_quality_filter(record, expr) is False


def test_absent_quality_presence(make_record):
    record = make_record('r1', mood='calm')
    assert evaluate_quality_filter(record, PresenceFilter('space', False)) is True
    assert evaluate_quality_filter(record, PresenceFilter('space', True)) is False
    assert evaluate_quality_filter(record, PresenceFilter('mood', True)) is True


def test_value_match_is_case_insensitive_substring(make_record):
    record = make_record('r1', focus='Zeroing In on the failing test')
    assert evaluate_quality_filter(record, parse_quality_filter({'focus': 'failing TEST'}))
    assert not evaluate_quality_filter(record, parse_quality_filter({'focus': 'ocean'}))


def test_legacy_subtype_matches_migrated_phrases(make_record):
    record = make_record('r1', mood='I was withdrawn and quiet')
    assert evaluate_quality_filter(record, parse_quality_filter({'mood': 'closed'}))
    record = make_record('r2', embodied='my whole body knows this')
    assert evaluate_quality_filter(record, parse_quality_filter({'embodied': 'sensing'}))


def test_record_without_quality_data(make_record):
    record = make_record('r1', citation='just a quote')
    assert not evaluate_quality_filter(record, parse_quality_filter({'mood': 'open'}))
    assert not evaluate_quality_filter(record, parse_quality_filter({'mood': {'present': True}}))
    assert evaluate_quality_filter(record, parse_quality_filter({'mood': {'present': False}}))


def test_composites_evaluate(make_record):
    record = make_record('r1', mood='curious', purpose='drifting through ideas')
    expr = parse_quality_filter({
        '$and': [
            {'$or': [{'mood': 'anxious'}, {'mood': 'curious'}]},
            {'$not': {'purpose': 'goal'}},
        ]
    })
    assert evaluate_quality_filter(record, expr)


def test_evaluate_rejects_non_expression(make_record):
    with pytest.raises(QualityFilterError):
        evaluate_quality_filter(make_record('r1'), {'mood': 'open'})


def test_describe():
    expr = parse_quality_filter({'mood': 'closed', 'embodied': {'present': True}})
    assert describe_quality_filter(expr) == '(mood.closed AND embodied present)'
    assert describe_quality_filter(parse_quality_filter({'mood': ['open', 'curious']})) == 'mood (open OR curious)'
    expr = parse_quality_filter({'$not': {'$or': [{'time': {'present': False}}, {'space': 'here'}]}})
    assert describe_quality_filter(expr) == 'NOT ((time absent OR space.here))'
