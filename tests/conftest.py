import os
import tempfile

# ログ出力先はパッケージ読み込み前に決める
os.environ.setdefault('ERP_QUERY_LOG_FILE', os.path.join(tempfile.gettempdir(), 'erp_query_test.log'))

import pytest
import pytest_asyncio

from erp_query.search import FieldRecord, SearchIndex, CacheManager


class FakeClock:
    """エポックミリ秒を手動で進める時計"""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sample_records():
    return [
        FieldRecord(id='1', field_number='001', field_name='CustomerMaster', file_code='A1',
                    file_name='顧客マスタ', data_type='CHAR', length='10',
                    field_description='顧客コード', remark='主キー'),
        FieldRecord(id='2', field_number='002', field_name='VendorCode', file_code='A1',
                    file_name='顧客マスタ', data_type='CHAR', length='8',
                    field_description='仕入先コード'),
        FieldRecord(id='3', field_number='003', field_name='OrderDate', file_code='B2',
                    file_name='受注ファイル', data_type='DATE', length='8',
                    field_description='受注日, 伝票日付', remark='YYYYMMDD'),
        FieldRecord(id='4', field_number='010', field_name='Amount', file_code='B2',
                    file_name='受注ファイル', data_type='NUM', length='12',
                    field_description='受注金額'),
        FieldRecord(id='5', field_number='011', field_name=None, file_code='C3',
                    file_name='在庫ファイル', data_type='NUM', length='5'),
    ]


@pytest.fixture
def built_index(sample_records):
    index = SearchIndex()
    index.build(sample_records)
    return index


@pytest_asyncio.fixture
async def cache_manager(tmp_path, clock):
    manager = CacheManager(tmp_path / 'cache', clock=clock)
    yield manager
    await manager.shutdown()
