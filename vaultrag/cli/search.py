"""
Vault Search - Search the indexed vault from command line

Usage:
    vault-search "your query here"
    vault-search "quarterly plan" --top-k 10
    vault-search "deploy steps" --folder Projects --tag ops
"""

import sys
import argparse
import asyncio
import json

from vaultrag.cli.common import (
    add_config_arguments,
    add_filter_arguments,
    filter_from_args,
    load_cli_config,
    report_config_error,
)
from vaultrag.config import ConfigurationError
from vaultrag.notifications import NullNotifier


async def run(args: argparse.Namespace) -> int:
    config = load_cli_config(args)

    from vaultrag.indexing.indexer import VaultIndexer

    indexer = VaultIndexer.from_config(config, notifier=NullNotifier())
    indexer.vector_store.load()

    if not indexer.embeddings_enabled:
        print("❌ Error: embedding.api_key is not set", file=sys.stderr)
        return 1

    search_filter = filter_from_args(args)
    if search_filter:
        print(f"🔍 Searching ({search_filter.describe()})...", file=sys.stderr)
    else:
        print(f"🔍 Searching {config.vault_root}...", file=sys.stderr)

    results = await indexer.search(
        args.query,
        limit=args.top_k,
        search_filter=search_filter,
        pool_size=args.pool_size,
    )

    if args.json:
        output = []
        for i, result in enumerate(results, 1):
            entry = {"rank": i}
            entry.update(result.to_dict())
            output.append(entry)
        print(json.dumps(output, indent=2))
        return 0

    print(f"\n✅ Found {len(results)} results for: '{args.query}'\n", file=sys.stderr)
    for i, result in enumerate(results, 1):
        print(f"{'='*80}")
        print(f"Result {i}/{len(results)} - Score: {result.score:.4f} "
              f"(vector {result.vector_score or 0.0:.4f}, keyword {result.keyword_score or 0.0:.2f})")
        print(f"Source: {result.display_link}")
        print(f"File: {result.document_path}")
        print(f"Chunk ID: {result.chunk_id}")
        print(f"{'-'*80}")
        print(result.content)
        print()

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Search the indexed vault (vector + keyword hybrid)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vault-search "quarterly plan"
  vault-search "deploy steps" --top-k 10
  vault-search "meeting notes" --folder Work --tag meetings
  vault-search "budget" --json
        """
    )

    parser.add_argument("query", help="Search query")
    parser.add_argument(
        "--top-k",
        type=int,
        default=5,
        help="Number of results to return (default: 5)"
    )
    parser.add_argument(
        "--pool-size",
        type=int,
        default=None,
        help="Vector candidates to rerank (default: retrieval.pool_size)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON"
    )
    add_filter_arguments(parser)
    add_config_arguments(parser)

    args = parser.parse_args()

    try:
        return asyncio.run(run(args))
    except ConfigurationError as e:
        return report_config_error(e)
    except Exception as e:
        print(f"❌ Error during search: {e}", file=sys.stderr)
        import traceback
        traceback.print_exc(file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
