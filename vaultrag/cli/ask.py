"""
Vault Ask - Ask a question about the vault from command line

Usage:
    vault-ask "What did we decide about the launch date?"
    vault-ask "Summarize open risks" --folder Projects/Alpha
    vault-ask "Which recipes use lentils?" --model llama3.1:8b
"""

import sys
import argparse
import asyncio

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
    if args.model:
        indexer.rag_engine.set_model(args.model)

    search_filter = filter_from_args(args)

    if args.show_context:
        results = await indexer.rag_engine.get_context(args.query, search_filter=search_filter)
        print(f"Context ({len(results)} chunks):", file=sys.stderr)
        for result in results:
            print(f"   {result.display_link} ({result.score * 100:.1f}%)", file=sys.stderr)
        print(file=sys.stderr)

    answer = await indexer.ask(args.query, search_filter=search_filter)
    print(answer)
    return 1 if answer.startswith("Error:") else 0


def main():
    parser = argparse.ArgumentParser(
        description="Ask a question answered from your notes, with [[Note]] citations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  vault-ask "What did we decide about the launch date?"
  vault-ask "Summarize open risks" --folder Projects/Alpha
  vault-ask "What are my reading goals?" --tag goals --show-context
        """
    )

    parser.add_argument("query", help="Question to ask")
    parser.add_argument(
        "--model",
        help="Chat model (default: chat.model)"
    )
    parser.add_argument(
        "--show-context",
        action="store_true",
        help="Print the retrieved sources before the answer"
    )
    add_filter_arguments(parser)
    add_config_arguments(parser)

    args = parser.parse_args()

    try:
        return asyncio.run(run(args))
    except ConfigurationError as e:
        return report_config_error(e)
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
