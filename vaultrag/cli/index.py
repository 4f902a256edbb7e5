"""
Vault Index - Rebuild the vault's chunk index and embeddings from command line

Usage:
    vault-index
    vault-index --force
    vault-index --dry-run
    vault-index --purge-excluded
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

    notifier = create_notifier_from_config(config.notifications) if config.notifications else ConsoleNotifier()
    indexer = VaultIndexer.from_config(config, notifier=notifier)

    if args.dry_run:
        documents = indexer.list_documents()
        print(f"\nDRY RUN - Would index {len(documents)} documents from {config.vault_root}:", file=sys.stderr)
        for doc in documents:
            print(f"   - {doc.path}", file=sys.stderr)
        return 0

    print(f"Indexing vault {config.vault_root}...", file=sys.stderr)
    stats = await indexer.startup()

    if stats.purged_vectors:
        print(f"   Purged {stats.purged_vectors} vectors from excluded folders", file=sys.stderr)
    if args.purge_excluded:
        await indexer.shutdown()
        return 0

    if stats.needs_rebuild and not args.force:
        print(
            f"   ⚠️  {stats.legacy_vectors} stored vectors lack content metadata; "
            "re-run with --force to re-embed them",
            file=sys.stderr,
        )

    # startup() already chunked the vault
    if args.force:
        stats = await indexer.force_rebuild(rechunk=False)
    else:
        stats = await indexer.rebuild_index(rechunk=False)

    await indexer.shutdown()

    result = stats.embedding
    print(f"\n✅ Indexed {stats.documents} documents into {stats.chunks} chunks", file=sys.stderr)
    if result is not None:
        if result.error:
            print(f"   Embedding error: {result.error}", file=sys.stderr)
        else:
            print(
                f"   Embeddings: {result.processed} new, {result.skipped} cached, {result.failed} failed",
                file=sys.stderr,
            )
    print(f"   Vectors stored: {stats.vectors}", file=sys.stderr)

    if result is not None and (result.error or result.failed):
        return 1
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Index a notes vault for retrieval-augmented chat",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vault-index
  vault-index --force
  vault-index --dry-run
  vault-index --config ~/notes/.vault-rag.yml
        """
    )

    parser.add_argument(
        "--force",
        action="store_true",
        help="Clear all cached vectors and re-embed everything"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be indexed without actually doing it"
    )
    parser.add_argument(
        "--purge-excluded",
        action="store_true",
        help="Only remove vectors of excluded folders, then exit"
    )
    add_config_arguments(parser)

    args = parser.parse_args()

    try:
        return asyncio.run(run(args))
    except ConfigurationError as e:
        return report_config_error(e)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ Error during indexing: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc(file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
