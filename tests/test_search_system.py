import pytest

from erp_query.search import (
    FieldRecord, SearchField, SearchIndex, SearchEngine, build_criteria, parse_multiple_conditions
)


def _ids(records):
    return {record.id for record in records}


@pytest.fixture
def and_or_records():
    return [
        FieldRecord(id='1', field_name='Customer', file_code='A1'),
        FieldRecord(id='2', field_name='Vendor', file_code='A1'),
    ]


@pytest.mark.parametrize('indexed', [True, False])
def test_and_across_fields_or_within_field(and_or_records, indexed):
    index = SearchIndex()
    if indexed:
        index.build(and_or_records)
    engine = SearchEngine(index)

    both = engine.search({'fieldName': ['customer', 'vendor'], 'fileCode': ['A1']}, and_or_records)
    none = engine.search({'fieldName': ['customer'], 'fileCode': ['B1']}, and_or_records)

    assert _ids(both) == {'1', '2'}
    assert none == []


@pytest.mark.parametrize('indexed', [True, False])
def test_substring_matching(indexed):
    records = [FieldRecord(id='1', field_name='CustomerMaster')]
    index = SearchIndex()
    if indexed:
        index.build(records)

    results = SearchEngine(index).search({SearchField.FIELD_NAME: ['mer']}, records)

    assert _ids(results) == {'1'}


@pytest.mark.parametrize('criteria', [{}, {'fieldName': []}, {'fieldName': [' '], 'remark': []}])
def test_empty_criteria_returns_nothing(built_index, sample_records, criteria):
    engine = SearchEngine(built_index)

    assert engine.search(criteria, sample_records) == []
    assert engine.stats['empty_criteria_searches'] == 1


@pytest.mark.parametrize('criteria', [
    {'fieldName': ['customer', 'order']},
    {'fileCode': ['a1', 'b2'], 'dataType': ['char']},
    {'fieldDescription': ['受注']},
    {'remark': ['yyyy', '主']},
    {'length': ['8'], 'fileName': ['ファイル', 'マスタ']},
    {'fieldName': ['zzz']},
    {'fieldNumber': ['01'], 'dataType': ['num']},
])
def test_index_and_scan_paths_agree(sample_records, criteria):
    index = SearchIndex()
    index.build(sample_records)
    indexed = SearchEngine(index).search(criteria, sample_records)
    scanned = SearchEngine(SearchIndex()).search(criteria, sample_records)

    assert _ids(indexed) == _ids(scanned)


def test_missing_value_never_matches(sample_records):
    engine = SearchEngine(SearchIndex())

    results = engine.search({'fieldName': ['a']}, sample_records)

    assert '5' not in _ids(results)


def test_search_statistics_track_paths(built_index, sample_records):
    engine = SearchEngine(built_index)
    engine.search({'fileCode': ['a1']}, sample_records)
    built_index.clear()
    engine.search({'fileCode': ['a1']}, sample_records)

    stats = engine.get_search_statistics()
    assert stats['search_count'] == 2
    assert stats['indexed_searches'] == 1
    assert stats['scan_searches'] == 1


def test_parse_multiple_conditions():
    assert parse_multiple_conditions(' a  b,c ,, d ') == ['a', 'b', 'c', 'd']
    assert parse_multiple_conditions('   ') == []
    assert parse_multiple_conditions(None) == []


def test_build_criteria_omits_empty_inputs():
    criteria = build_criteria({'fieldName': 'cust, vend', 'fileCode': '', 'remark': ' '})

    assert criteria == {SearchField.FIELD_NAME: ['cust', 'vend']}


def test_unknown_field_is_rejected(sample_records):
    with pytest.raises(ValueError):
        build_criteria({'nope': 'x'})
    with pytest.raises(ValueError):
        SearchEngine().search({'nope': ['x']}, sample_records)
