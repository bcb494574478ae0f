"""Command line entry points for the restore and save steps.

Usage:
    workflow-cache restore --path node_modules --key npm-$HASH --restore-keys npm-
    workflow-cache save --path node_modules --key npm-$HASH

Every option falls back to the matching action input (INPUT_* variables).
"""

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence

from workflow_cache.actions import (
    Outputs,
    State,
    get_input,
    get_input_bool,
    get_input_int,
    get_input_list,
    get_state,
    is_exact_key_match,
    save_state,
    set_output,
)
from workflow_cache.cache.restore import restore_cache, restore_cache_sync
from workflow_cache.cache.save import is_feature_available, save_cache, save_cache_sync
from workflow_cache.clients.models import DownloadOptions, UploadOptions
from workflow_cache.core.config import Settings, get_settings
from workflow_cache.core.exceptions import CacheError
from workflow_cache.core.logging import configure_logging, get_logger


logger = get_logger(__name__)

FEATURE_UNAVAILABLE_MESSAGE = (
    "Cache action is only supported on runners with a cache service configured "
    "(ACTIONS_CACHE_URL is not set)."
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-cache",
        description="Save and restore CI workflow caches",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    restore = subparsers.add_parser("restore", help="Restore a cache")
    restore.add_argument("--path", action="append", help="Path or pattern to restore (repeatable)")
    restore.add_argument("--key", help="Primary key, matched exactly")
    restore.add_argument(
        "--restore-keys", action="append", help="Ordered prefix keys tried after the primary key"
    )
    restore.add_argument("--enable-cross-os-archive", action="store_true", default=None)
    restore.add_argument("--fail-on-cache-miss", action="store_true", default=None)
    restore.add_argument("--lookup-only", action="store_true", default=None)
    restore.add_argument("--sync", action="store_true", default=None)
    restore.add_argument("--custom-compression", help='Compress program for tar, or "none"')

    save = subparsers.add_parser("save", help="Save a cache")
    save.add_argument("--path", action="append", help="Path or pattern to cache (repeatable)")
    save.add_argument("--key", help="Key to save under (defaults to the restore step's key)")
    save.add_argument("--upload-chunk-size", type=int, help="Upload chunk size in bytes")
    save.add_argument("--enable-cross-os-archive", action="store_true", default=None)
    save.add_argument("--sync", action="store_true", default=None)
    save.add_argument("--custom-compression", help='Compress program for tar, or "none"')

    return parser


def _flag(value: bool | None, input_name: str) -> bool:
    return value if value is not None else get_input_bool(input_name)


async def run_restore(args: argparse.Namespace, settings: Settings) -> int:
    """Restore step. Returns the process exit code."""
    if not is_feature_available(settings):
        logger.warning(FEATURE_UNAVAILABLE_MESSAGE)
        set_output(settings, Outputs.CACHE_HIT, "false")
        return 0

    primary_key = args.key or get_input("key")
    if not primary_key:
        logger.error("Input required and not supplied: key")
        return 1
    save_state(settings, State.CACHE_PRIMARY_KEY, primary_key)

    paths = args.path or get_input_list("path")
    restore_keys = args.restore_keys or get_input_list("restore-keys")
    try:
        lookup_only = _flag(args.lookup_only, "lookup-only")
        fail_on_miss = _flag(args.fail_on_cache_miss, "fail-on-cache-miss")
        options = DownloadOptions(lookup_only=lookup_only)
        if _flag(args.sync, "sync"):
            cache_key = await restore_cache_sync(paths, primary_key, options, settings=settings)
        else:
            cache_key = await restore_cache(
                paths,
                primary_key,
                restore_keys,
                options,
                _flag(args.enable_cross_os_archive, "enableCrossOsArchive"),
                args.custom_compression or get_input("custom-compression") or None,
                settings=settings,
            )
    except (CacheError, ValueError) as e:
        logger.error(str(e))
        return 1

    set_output(settings, Outputs.PRIMARY_KEY, primary_key)
    if not cache_key:
        if fail_on_miss:
            logger.error(
                "Failed to restore cache entry. Exiting as fail-on-cache-miss is set.",
                keys=[primary_key, *restore_keys],
            )
            return 1
        logger.info("Cache not found for input keys", keys=[primary_key, *restore_keys])
        set_output(settings, Outputs.CACHE_HIT, "false")
        return 0

    save_state(settings, State.CACHE_MATCHED_KEY, cache_key)
    set_output(settings, Outputs.CACHE_HIT, str(is_exact_key_match(primary_key, cache_key)).lower())
    set_output(settings, Outputs.MATCHED_KEY, cache_key)

    if lookup_only:
        logger.info(f"Cache found and can be restored from key: {cache_key}")
    else:
        logger.info(f"Cache restored from key: {cache_key}")
    return 0


async def run_save(args: argparse.Namespace, settings: Settings) -> int:
    """Save step. Returns the process exit code."""
    if not is_feature_available(settings):
        logger.warning(FEATURE_UNAVAILABLE_MESSAGE)
        return 0

    primary_key = args.key or get_input("key") or get_state(State.CACHE_PRIMARY_KEY)
    if not primary_key:
        logger.warning("Key is not specified.")
        return 0

    restored_key = get_state(State.CACHE_MATCHED_KEY)
    if is_exact_key_match(primary_key, restored_key):
        logger.info(f"Cache hit occurred on the primary key {primary_key}, not saving cache.")
        return 0

    paths = args.path or get_input_list("path")

    try:
        if _flag(args.sync, "sync"):
            cache_id = await save_cache_sync(paths, primary_key, settings=settings)
        else:
            chunk_size = args.upload_chunk_size or get_input_int("upload-chunk-size")
            options = UploadOptions(
                upload_chunk_size=chunk_size or settings.upload_chunk_size,
                upload_concurrency=settings.upload_concurrency,
            )
            cache_id = await save_cache(
                paths,
                primary_key,
                options,
                _flag(args.enable_cross_os_archive, "enableCrossOsArchive"),
                args.custom_compression or get_input("custom-compression") or None,
                settings=settings,
            )
    except (CacheError, ValueError) as e:
        logger.error(str(e))
        return 1

    if cache_id != -1:
        logger.info(f"Cache saved with key: {primary_key}")
    return 0


def main(argv: Sequence[str] | None = None, settings: Settings | None = None) -> int:
    """CLI entry point."""
    configure_logging()
    args = build_parser().parse_args(argv)
    settings = settings or get_settings()

    if args.command == "restore":
        return asyncio.run(run_restore(args, settings))
    return asyncio.run(run_save(args, settings))
