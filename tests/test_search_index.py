from erp_query.search import FieldRecord, SearchField, SearchIndex


def test_lookup_on_unbuilt_index_returns_none():
    index = SearchIndex()

    assert not index.is_built()
    assert index.lookup(SearchField.FIELD_NAME, 'customer') is None


def test_lookup_matches_substrings_case_insensitively(built_index):
    assert built_index.lookup(SearchField.FIELD_NAME, 'MER') == {'1'}
    assert built_index.lookup(SearchField.FIELD_NAME, 'customermaster') == {'1'}
    # 5文字の語は n-gram に無くてもキー包含で一致
    assert built_index.lookup(SearchField.FIELD_NAME, 'ermas') == {'1'}


def test_lookup_is_scoped_to_field(built_index):
    assert built_index.lookup(SearchField.FILE_CODE, 'a1') == {'1', '2'}
    assert built_index.lookup(SearchField.FIELD_NAME, 'a1') == set()


def test_lookup_on_unindexed_field_returns_none():
    index = SearchIndex(indexed_fields=[SearchField.FIELD_NAME])
    index.build([FieldRecord(id='1', field_name='x', remark='y')])

    assert index.lookup(SearchField.REMARK, 'y') is None


def test_rebuild_replaces_previous_state():
    index = SearchIndex()
    index.build([FieldRecord(id='a', field_name='Alpha')])
    index.build([FieldRecord(id='b', field_name='Beta')])

    assert index.lookup(SearchField.FIELD_NAME, 'alpha') == set()
    assert index.record_by_id('a') is None
    assert index.lookup(SearchField.FIELD_NAME, 'beta') == {'b'}


def test_records_by_ids_skips_unknown_ids_and_keeps_dataset_order(built_index):
    records = built_index.records_by_ids({'4', 'missing', '1', '3'})

    assert [r.id for r in records] == ['1', '3', '4']


def test_clear_resets_built_state(built_index):
    built_index.clear()

    assert not built_index.is_built()
    assert built_index.records_by_ids({'1'}) == []
    assert built_index.get_index_stats()['total_records'] == 0


def test_index_stats(built_index, sample_records):
    stats = built_index.get_index_stats()

    assert stats['total_records'] == len(sample_records)
    assert stats['indexed_fields'] == 8
    assert stats['total_index_entries'] > 0


def test_duplicate_ids_keep_last_record():
    index = SearchIndex()
    index.build([FieldRecord(id='1', field_name='Old'), FieldRecord(id='1', field_name='New')])

    assert index.record_by_id('1').field_name == 'New'
    assert index.lookup(SearchField.FIELD_NAME, 'old') == set()
