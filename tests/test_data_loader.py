import httpx
import pytest

from erp_query.loader import DataLoader
from erp_query.utils import DataLoadError


def _row(row_id, name, code='A1'):
    return {'id': row_id, 'cell': ['', f'{row_id:0>3}', name, code, '顧客マスタ', 'CHAR', '10',
                                   f'{name} の説明', '備考']}


SHARDS = {
    '/data/a.json': {'rows': [_row('1', 'Customer'), _row('2', 'Vendor')]},
    '/data/b.json': {'rows': [_row('3', 'OrderDate', 'B2')]},
}


def _loader(handler, files=('data/a.json', 'data/b.json')):
    return DataLoader(base_url='http://test', data_files=files, retry_delay=0,
                      transport=httpx.MockTransport(handler))


def test_get_full_path_joins_without_double_slash():
    loader = DataLoader(base_url='http://host/app/')

    assert loader.get_full_path('/data/a.json') == 'http://host/app/data/a.json'
    assert DataLoader(base_url='http://host').get_full_path('x.json') == 'http://host/x.json'


@pytest.mark.asyncio
async def test_load_all_files_concatenates_in_file_order():
    def handler(request):
        return httpx.Response(200, json=SHARDS[request.url.path])

    progress = []
    records = await _loader(handler).load_all_files(progress.append)

    assert [r.id for r in records] == ['1', '2', '3']
    assert records[0].field_name == 'Customer'
    assert records[0].field_description == 'Customer の説明'
    assert records[2].file_code == 'B2'
    assert progress[-1]['percentage'] == 100
    assert progress[-1]['total_records'] == 3


@pytest.mark.asyncio
async def test_transient_failures_are_retried():
    attempts = {'count': 0}

    def handler(request):
        if request.url.path == '/data/a.json':
            attempts['count'] += 1
            if attempts['count'] < 3:
                return httpx.Response(503)
        return httpx.Response(200, json=SHARDS[request.url.path])

    records = await _loader(handler).load_all_files()

    assert attempts['count'] == 3
    assert len(records) == 3


@pytest.mark.asyncio
async def test_exhausted_retries_raise_data_load_error():
    attempts = {'count': 0}

    def handler(request):
        attempts['count'] += 1
        raise httpx.ConnectError('connection refused', request=request)

    with pytest.raises(DataLoadError):
        await _loader(handler, files=('data/a.json',)).load_all_files()
    assert attempts['count'] == 3


@pytest.mark.asyncio
async def test_invalid_shard_format_is_a_load_error():
    def handler(request):
        return httpx.Response(200, json={'items': []})

    with pytest.raises(DataLoadError):
        await _loader(handler, files=('data/a.json',)).load_all_files()


def test_parse_json_data_skips_short_rows_and_strips_values():
    data = {'rows': [
        {'id': '1', 'cell': ['', ' 001 ', ' Name ', 'A1', 'F', 'CHAR', '10', 'desc', '']},
        {'id': '2', 'cell': ['', '002']},
        {'cell': ['', '003', 'x', 'y', 'z', 'w', 'v', 'u', 't']},
        {'id': 4, 'cell': ['', None, 'N', 'C', 'F', 'NUM', 5, None, None]},
    ]}

    records = DataLoader.parse_json_data(data)

    assert [r.id for r in records] == ['1', '4']
    assert records[0].field_number == '001'
    assert records[0].field_name == 'Name'
    assert records[0].detailed_description == 'desc'
    assert records[1].field_number == ''
    assert records[1].length == '5'


def test_parse_json_data_skips_non_list_cells():
    data = {'rows': [
        {'id': '1', 'cell': {str(i): 'v' for i in range(9)}},
        {'id': '2', 'cell': 'abcdefghijk'},
        {'id': '3', 'cell': ['', '003', 'Name', 'A1', 'F', 'CHAR', '10', 'desc', '']},
        'not a row',
    ]}

    records = DataLoader.parse_json_data(data)

    assert [r.id for r in records] == ['3']


@pytest.mark.asyncio
async def test_malformed_rows_do_not_fail_the_load():
    def handler(request):
        return httpx.Response(200, json={'rows': [
            {'id': '1', 'cell': {'1': 'x'}},
            _row('2', 'Vendor'),
        ]})

    records = await _loader(handler, files=('data/a.json',)).load_all_files()

    assert [r.id for r in records] == ['2']
