"""
Vault Watch - Keep the index in sync while the vault changes

Indexes the vault once, then polls for created, modified, deleted and
renamed documents until interrupted (Ctrl+C).

Usage:
    vault-watch
    vault-watch --interval 2
"""

import sys
import argparse
import asyncio

from vaultrag.cli.common import add_config_arguments, load_cli_config, report_config_error
from vaultrag.config import ConfigurationError
from vaultrag.notifications import ConsoleNotifier, create_notifier_from_config


async def run(args: argparse.Namespace) -> int:
    config = load_cli_config(args)

    from vaultrag.indexing.indexer import VaultIndexer
    from vaultrag.vault.watcher import VaultWatcher

    notifier = create_notifier_from_config(config.notifications) if config.notifications else ConsoleNotifier()
    indexer = VaultIndexer.from_config(config, notifier=notifier)

    stats = await indexer.startup()
    if stats.needs_rebuild:
        print(f"⚠️  {stats.legacy_vectors} stored vectors lack content metadata; run vault-index --force",
              file=sys.stderr)
    if not args.no_initial_embed:
        await indexer.rebuild_embeddings()

    watcher = VaultWatcher(indexer.source, poll_interval=args.interval or config.sync.poll_interval)
    watcher.prime()

    print(f"👀 Watching {config.vault_root} (Ctrl+C to stop)", file=sys.stderr)
    stop = asyncio.Event()
    try:
        await watcher.watch(indexer.handle_event, stop)
    finally:
        await indexer.shutdown()
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Watch a vault and keep its index up to date",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vault-watch
  vault-watch --interval 2
  vault-watch --no-initial-embed
        """
    )

    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between polls (default: sync.poll_interval)"
    )
    parser.add_argument(
        "--no-initial-embed",
        action="store_true",
        help="Skip embedding outstanding chunks on startup"
    )
    add_config_arguments(parser)

    args = parser.parse_args()

    try:
        return asyncio.run(run(args))
    except ConfigurationError as e:
        return report_config_error(e)
    except KeyboardInterrupt:
        print("\nStopped watching", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"❌ Error while watching: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc(file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
