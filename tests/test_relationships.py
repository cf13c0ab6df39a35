from experience_recall.search import RelationshipGraph, resolve_related


def test_reflection_is_found_from_both_sides(make_record):
    records = [make_record('A', reflects=['B']), make_record('B')]
    assert resolve_related('A', records) == {'A', 'B'}
    assert resolve_related('B', records) == {'A', 'B'}


def test_component_follows_chains_and_siblings(make_record):
    records = [
        make_record('root'),
        make_record('r1', reflects=['root']),
        make_record('r2', reflects=['r1']),
        make_record('sibling', reflects=['root']),
        make_record('loner'),
    ]
    assert resolve_related('r2', records) == {'root', 'r1', 'r2', 'sibling'}
    assert resolve_related('loner', records) == {'loner'}


def test_unknown_seed_returns_empty_set(make_record):
    assert resolve_related('ghost', [make_record('A')]) == set()


def test_dangling_links_are_ignored(make_record):
    records = [make_record('A', reflects=['deleted', 'B']), make_record('B')]
    graph = RelationshipGraph(records)
    assert graph.reflections_of('A') == ['B']
    assert graph.reflected_by('B') == ['A']
    assert graph.component('A') == {'A', 'B'}


def test_cycles_terminate(make_record):
    records = [make_record('A', reflects=['B']), make_record('B', reflects=['A'])]
    assert resolve_related('A', records) == {'A', 'B'}


def test_graph_accepts_a_one_shot_iterable(make_record):
    records = (make_record(record_id) for record_id in ('A', 'B'))
    graph = RelationshipGraph(records)
    assert graph.ids == {'A', 'B'}
    assert graph.component('B') == {'B'}
