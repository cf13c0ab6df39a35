import json

import pytest

from experience_recall.cli import build_query, create_parser, main
from experience_recall.records import write_experience_records


@pytest.fixture
def workspace(tmp_path, monkeypatch, make_record):
    for name in ('RECALL_EMBEDDING_PROVIDER', 'OPENAI_API_KEY', 'VOYAGE_API_KEY'):
        monkeypatch.delenv(name, raising=False)

    records_path = tmp_path / 'experiences.jsonl'
    write_experience_records([
        make_record('exp_debug', created='2024-01-15T15:00:00Z',
                    citation='spent the afternoon debugging the parser'),
        make_record('exp_reflect', created='2024-01-17T09:00:00Z', reflects=['exp_debug'],
                    mood='curious about why the parser failed'),
        make_record('exp_walk', created='2024-01-16T09:00:00Z', embodied='legs heavy after the walk'),
    ], records_path)

    config_path = tmp_path / 'config.yaml'
    config_path.write_text(
        "embedding:\n"
        "  provider: none\n"
        "paths:\n"
        f"  records: {records_path}\n"
        f"  vectors: {tmp_path / 'vectors.json'}\n",
        encoding='utf-8',
    )
    return config_path


def test_describe_filter(capsys, tmp_path):
    code = main(['--config', str(tmp_path / 'missing.yaml'), 'describe-filter',
                 '{"$or": [{"mood": "open"}, {"focus": {"present": false}}]}'])
    assert code == 0
    assert capsys.readouterr().out.strip() == '(mood.open OR focus absent)'


def test_describe_filter_reports_errors(capsys, tmp_path):
    code = main(['--config', str(tmp_path / 'missing.yaml'), 'describe-filter', '{"colour": "blue"}'])
    assert code == 2
    assert "unknown quality 'colour'" in capsys.readouterr().err


def test_search_command(capsys, workspace):
    code = main(['--config', str(workspace), 'search', '--text', 'parser', '--limit', '1'])
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data['total'] == 2
    assert len(data['results']) == 1
    assert data['degraded'] == []


def test_search_related_and_grouped(capsys, workspace):
    code = main(['--config', str(workspace), 'search', '--related-to', 'exp_debug', '--group-by', 'day'])
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert {r['id'] for r in data['results']} == {'exp_debug', 'exp_reflect'}
    assert data['group_counts'] == {'2024-01-17': 1, '2024-01-15': 1}


def test_search_with_bad_date_exits_with_validation_code(capsys, workspace):
    code = main(['--config', str(workspace), 'search', '--created', '{"start": "2024-02-01", "end": "2024-01-01"}'])
    assert code == 2
    assert 'start is after end' in capsys.readouterr().err


def test_search_with_invalid_json_filter(capsys, workspace):
    code = main(['--config', str(workspace), 'search', '--qualities', '{mood: open}'])
    assert code == 2
    assert '--qualities is not valid JSON' in capsys.readouterr().err


def test_reindex_command(capsys, workspace):
    code = main(['--config', str(workspace), 'reindex'])
    assert code == 0
    data = json.loads(capsys.readouterr().out)
    assert data['indexed'] == 3
    assert data['provider'] == 'none'
    assert data['store'] == 'local'


def test_show_config(capsys, workspace):
    assert main(['--config', str(workspace), '--show-config']) == 0
    assert json.loads(capsys.readouterr().out)['embedding']['provider'] == 'none'


def test_build_query_maps_arguments():
    args = create_parser().parse_args([
        'search', '-q', 'walk', '--types', 'experience', 'reflection',
        '--created', '2024-01-16', '--occurred', '{"end": "2024-01-20"}',
        '--qualities', '{"embodied": {"present": true}}', '--offset', '2', '--full',
        '--vector-threshold', '0.6',
    ])
    assert build_query(args) == {
        'text': 'walk',
        'types': ['experience', 'reflection'],
        'offset': 2,
        'include_full_content': True,
        'created': '2024-01-16',
        'occurred': {'end': '2024-01-20'},
        'qualities': {'embodied': {'present': True}},
        'vector_threshold': 0.6,
    }


def test_no_command_prints_help(capsys, tmp_path):
    assert main(['--config', str(tmp_path / 'missing.yaml')]) == 1
    assert 'usage' in capsys.readouterr().out
