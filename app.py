#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
ERP欄位検索 - メイン実行ファイル

データ読み込み・複数条件検索・キャッシュ管理のコマンドラインエントリーポイント
"""

import os
import sys
import time
import asyncio
import argparse
import traceback

import psutil

from erp_query.search import SearchIndex, SearchEngine, CacheManager, SearchField, build_criteria
from erp_query.loader import DataLoader, DataStore
from erp_query.session import SearchSession
from erp_query.utils import (
    setup_debug_logger, load_app_settings, resolve_cache_directory,
    validate_search_criteria, validate_search_value, ErpQueryError
)

# デバッグロガー
debug_logger = setup_debug_logger('MainApp')

project_root = os.path.dirname(os.path.abspath(__file__))

DAY_MS = 24 * 60 * 60 * 1000


def display_startup_info(settings):
    """起動情報表示"""
    print("\n" + "=" * 70)
    print("🚀 ERP欄位検索")
    print("=" * 70)

    try:
        physical_cores = psutil.cpu_count(logical=False)
        logical_cores = psutil.cpu_count(logical=True)
        memory_gb = psutil.virtual_memory().total / (1024 ** 3)
        print(f"💻 システム仕様: {physical_cores}物理コア/{logical_cores}論理コア, {memory_gb:.1f}GB RAM")
    except (OSError, RuntimeError) as e:
        print(f"💻 システム仕様: 情報取得エラー - {e}")

    print(f"📁 プロジェクトルート: {project_root}")
    print(f"🌐 データ取得元: {settings['data']['base_url']}")
    print()


def build_components(settings, offline: bool = False):
    """検索コンポーネント一式を組み立てる"""
    cache_dir = resolve_cache_directory(settings)
    cache_manager = CacheManager(cache_dir, bounded_max_bytes=settings["cache"]["bounded_max_bytes"])
    search_index = SearchIndex()
    data_store = DataStore(
        DataLoader.from_settings(settings),
        cache_manager,
        search_index,
        is_online=lambda: not offline,
        cache_expiry_ms=settings["cache"]["expiry_days"] * DAY_MS,
        on_progress=print_progress,
    )
    engine = SearchEngine(search_index)
    return cache_manager, data_store, engine


def print_progress(progress):
    print(f"  📥 {progress['loaded']}/{progress['total']} ({progress['percentage']}%) "
          f"{progress['current_file']}")


async def load_dataset(data_store: DataStore, force: bool):
    print("🔧 データ読み込み中...")
    await data_store.load_data(force_refresh=force)
    source = "キャッシュ" if data_store.is_using_cache else "ネットワーク"
    print(f"📊 レコード数: {data_store.total_records:,}件 (取得元: {source})")
    if data_store.error:
        print(f"⚠️ {data_store.error}")


async def run_load(args, settings):
    cache_manager, data_store, _ = build_components(settings, offline=args.offline)
    try:
        await load_dataset(data_store, args.force)
    finally:
        await cache_manager.shutdown()
    return 0


def collect_search_inputs(args):
    return {field: getattr(args, field.attribute) for field in SearchField
            if getattr(args, field.attribute)}


async def run_search(args, settings):
    inputs = collect_search_inputs(args)

    for field, text in inputs.items():
        validation = validate_search_value(text, field.value)
        if not validation.valid:
            for message in validation.errors:
                print(f"❌ {message}")
            return 2

    criteria = build_criteria(inputs)
    validation = validate_search_criteria(criteria)
    if not validation.valid:
        for message in validation.errors:
            print(f"❌ {message}")
        return 2

    cache_manager, data_store, engine = build_components(settings, offline=args.offline)
    try:
        await load_dataset(data_store, force=False)
        session = SearchSession(engine, data_store, cache_manager)

        start_time = time.time()
        session.search(criteria)
        if session.search_error:
            print(f"❌ {session.search_error}")
            return 1

        if args.sort:
            session.set_sorting(args.sort)
            if args.desc:
                session.set_sorting(args.sort)

        results = session.sorted_results()
        print(f"🔍 検索結果: {len(results):,}件 ({time.time() - start_time:.3f}秒)")

        limit = args.limit if args.limit is not None else settings["search"]["max_results_display"]
        for record in results[:limit]:
            print(f"  [{record.id}] {record.file_code or ''}.{record.field_name or ''} "
                  f"({record.data_type or ''}/{record.length or ''}) {record.field_description or ''}")
        if len(results) > limit:
            print(f"  ... 他 {len(results) - limit:,}件")
    finally:
        await cache_manager.shutdown()
    return 0


async def run_stats(args, settings):
    cache_manager, data_store, engine = build_components(settings, offline=True)
    try:
        cached = await data_store.load_from_cache()
        if cached:
            engine.search_index.build(cached)
        else:
            print("⚠️ キャッシュデータがありません")

        index_stats = engine.search_index.get_index_stats()
        cache_stats = cache_manager.get_cache_statistics()

        print("📊 インデックス統計:")
        print(f"  - レコード数: {index_stats['total_records']:,}件")
        print(f"  - 索引フィールド数: {index_stats['indexed_fields']}")
        print(f"  - 索引エントリ数: {index_stats['total_index_entries']:,}")

        search_stats = engine.get_search_statistics()
        print("🔍 検索統計:")
        print(f"  - 検索回数: {search_stats['search_count']} "
              f"(インデックス {search_stats['indexed_searches']} / 走査 {search_stats['scan_searches']})")

        print("💾 キャッシュ統計:")
        print(f"  - 容量制限層エントリ: {cache_stats['bounded_entries']}件")
        storage = cache_stats['bounded_storage']
        if storage:
            print(f"  - 容量制限層使用量: {storage['used_mb']}MB (書き込み可: {storage['available']})")
        else:
            print("  - 容量制限層: 利用不可")
        quota = cache_stats['quota_estimate']
        if quota:
            print(f"  - 高速層使用量: {quota['usage'] / (1024 * 1024):.2f}MB / "
                  f"{quota['quota'] / (1024 ** 3):.1f}GB")
    finally:
        await cache_manager.shutdown()
    return 0


async def run_clear_cache(args, settings):
    cache_manager, _, _ = build_components(settings)
    try:
        await cache_manager.clear_all_cache(args.prefix)
        print(f"🧹 キャッシュをクリアしました{f' (prefix: {args.prefix})' if args.prefix else ''}")
    finally:
        await cache_manager.shutdown()
    return 0


def create_parser():
    parser = argparse.ArgumentParser(prog='erp-query', description='ERP欄位検索')
    parser.add_argument('--settings', help='設定ファイルパス')
    subparsers = parser.add_subparsers(dest='command', required=True)

    load_parser = subparsers.add_parser('load', help='データ読み込み')
    load_parser.add_argument('--force', action='store_true', help='キャッシュを無視して再取得')
    load_parser.add_argument('--offline', action='store_true', help='キャッシュから復元')
    load_parser.set_defaults(handler=run_load)

    search_parser = subparsers.add_parser('search', help='複数条件検索')
    for field in SearchField:
        search_parser.add_argument(f'--{field.value}', dest=field.attribute,
                                   help='空白・カンマ区切りでOR条件')
    search_parser.add_argument('--limit', type=int, help='表示件数')
    search_parser.add_argument('--sort', choices=[field.value for field in SearchField], help='並べ替えフィールド')
    search_parser.add_argument('--desc', action='store_true', help='降順')
    search_parser.add_argument('--offline', action='store_true', help='キャッシュから復元')
    search_parser.set_defaults(handler=run_search)

    stats_parser = subparsers.add_parser('stats', help='統計情報表示')
    stats_parser.set_defaults(handler=run_stats)

    clear_parser = subparsers.add_parser('clear-cache', help='キャッシュクリア')
    clear_parser.add_argument('--prefix', help='容量制限層のキー接頭辞')
    clear_parser.set_defaults(handler=run_clear_cache)

    return parser


def main(argv=None):
    """メイン関数"""
    args = create_parser().parse_args(argv)
    settings = load_app_settings(args.settings)

    try:
        display_startup_info(settings)
        exit_code = asyncio.run(args.handler(args, settings))
        debug_logger.info(f"コマンド完了: {args.command} (終了コード {exit_code})")
        sys.exit(exit_code)

    except KeyboardInterrupt:
        print("\n⏹️ ユーザーによる中断")
        sys.exit(0)
    except ErpQueryError as e:
        print(f"\n❌ {e}")
        debug_logger.error(f"コマンド実行エラー: {e}")
        debug_logger.error(traceback.format_exc())
        print("詳細はログファイルを確認してください。")
        sys.exit(1)


if __name__ == "__main__":
    main()
