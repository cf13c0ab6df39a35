"""
Command-line interface for the recall engine.

Usage:
    python -m experience_recall search --records data/experiences.jsonl --text "debugging"
    python -m experience_recall search --qualities '{"mood": "closed"}' --group-by day
    python -m experience_recall reindex
    python -m experience_recall describe-filter '{"$or": [{"mood": "open"}, {"focus": "narrow"}]}'
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from experience_recall.config import Config, load_config
from experience_recall.errors import RecallError, ValidationError
from experience_recall.filters import describe_quality_filter, parse_quality_filter, validate_quality_filter
from experience_recall.pipeline import RecallEngine
from experience_recall.utils import setup_logging

logger = logging.getLogger(__name__)


def _json_arg(value: Optional[str], name: str) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise ValidationError(f"--{name} is not valid JSON: {e}", field=name)


def _date_arg(value: Optional[str], name: str) -> Any:
    """Date filters are either a bare ISO string or a JSON {start, end} object."""
    if value is None:
        return None
    if value.lstrip().startswith('{'):
        return _json_arg(value, name)
    return value


def build_query(args: argparse.Namespace) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if args.text:
        query['text'] = args.text
    if args.types:
        query['types'] = args.types
    for name in ('who', 'perspective', 'processing', 'related_to', 'group_by', 'sort', 'limit', 'timeout',
                 'vector_threshold'):
        value = getattr(args, name)
        if value is not None:
            query[name] = value
    if args.offset:
        query['offset'] = args.offset
    if args.full:
        query['include_full_content'] = True
    created = _date_arg(args.created, 'created')
    if created is not None:
        query['created'] = created
    occurred = _date_arg(args.occurred, 'occurred')
    if occurred is not None:
        query['occurred'] = occurred
    qualities = _json_arg(args.qualities, 'qualities')
    if qualities is not None:
        query['qualities'] = qualities
    return query


def cmd_search(args: argparse.Namespace, config: Config) -> int:
    engine = RecallEngine.from_config(config, records_path=args.records)
    response = engine.search(build_query(args))
    print(json.dumps(response.to_dict(), indent=2, ensure_ascii=False))
    return 0


def cmd_reindex(args: argparse.Namespace, config: Config) -> int:
    engine = RecallEngine.from_config(config, records_path=args.records)
    report = engine.reindex(clear=not args.incremental)
    print(json.dumps({
        'indexed': report.indexed,
        'unchanged': report.unchanged,
        'skipped': report.skipped,
        'failed': report.failed,
        'store': engine.store.name(),
        'provider': engine.embeddings.name(),
    }, indent=2))
    return 1 if report.failed else 0


def cmd_describe_filter(args: argparse.Namespace, config: Config) -> int:
    raw = _json_arg(args.filter, 'filter')
    errors = validate_quality_filter(raw)
    if errors:
        for error in errors:
            print(f"[ERROR] {error}", file=sys.stderr)
        return 2
    print(describe_quality_filter(parse_quality_filter(raw)))
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='experience_recall',
        description='Experience Recall - quality-filtered search over experience records',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--config', type=str, default=None,
                        help='Path to config.yaml file (default: nearest config.yaml)')
    parser.add_argument('--show-config', action='store_true',
                        help='Display effective configuration and exit')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command')

    search = subparsers.add_parser('search', help='Search experience records')
    search.add_argument('--records', type=Path, default=None,
                        help='JSONL records file (default: paths.records from config)')
    search.add_argument('--text', '-q', type=str, default=None, help='Free-text query')
    search.add_argument('--types', nargs='+', default=None, help='Record types to include')
    search.add_argument('--who', type=str, default=None, help='Participant id')
    search.add_argument('--perspective', type=str, default=None)
    search.add_argument('--processing', type=str, default=None)
    search.add_argument('--created', type=str, default=None,
                        help='ISO date or JSON {"start": ..., "end": ...}')
    search.add_argument('--occurred', type=str, default=None,
                        help='ISO date or JSON {"start": ..., "end": ...}')
    search.add_argument('--qualities', type=str, default=None, help='Quality filter as JSON')
    search.add_argument('--related-to', dest='related_to', type=str, default=None,
                        help='Only records connected to this id through reflects links')
    search.add_argument('--group-by', dest='group_by', choices=['day', 'week', 'month', 'experiencer'])
    search.add_argument('--sort', choices=['relevance', 'created', 'updated'])
    search.add_argument('--limit', type=int, default=None)
    search.add_argument('--offset', type=int, default=0)
    search.add_argument('--timeout', type=float, default=None, help='Search budget in seconds')
    search.add_argument('--vector-threshold', dest='vector_threshold', type=float, default=None,
                        help='Minimum cosine similarity for matches without lexical overlap')
    search.add_argument('--full', action='store_true', help='Return full content instead of snippets')
    search.set_defaults(func=cmd_search)

    reindex = subparsers.add_parser('reindex', help='Rebuild record embeddings in the vector store')
    reindex.add_argument('--records', type=Path, default=None)
    reindex.add_argument('--incremental', action='store_true',
                         help='Only embed new or changed records')
    reindex.set_defaults(func=cmd_reindex)

    describe = subparsers.add_parser('describe-filter', help='Validate and describe a quality filter')
    describe.add_argument('filter', type=str, help='Quality filter as JSON')
    describe.set_defaults(func=cmd_describe_filter)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.show_config:
        print(config.show())
        return 0

    if not getattr(args, 'func', None):
        parser.print_help()
        return 1

    try:
        return args.func(args, config)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except (RecallError, FileNotFoundError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
