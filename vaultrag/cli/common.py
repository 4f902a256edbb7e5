"""Argument helpers shared by the command-line tools"""

import argparse
import sys

from vaultrag.config import ConfigurationError, RAGConfig, configure_logging, load_config
from vaultrag.retrieval.filters import SearchFilter, make_filter


def add_config_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        help="Path to configuration file (default: $RAG_CONFIG or nearest .vault-rag.yml)"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )


def add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--file",
        action="append",
        default=[],
        help="Restrict to a document path (repeatable)"
    )
    parser.add_argument(
        "--folder",
        action="append",
        default=[],
        help="Restrict to a folder (repeatable)"
    )
    parser.add_argument(
        "--tag",
        action="append",
        default=[],
        help="Restrict to a tag, nested tags included (repeatable)"
    )


def filter_from_args(args: argparse.Namespace) -> SearchFilter:
    return make_filter(files=args.file, folders=args.folder, tags=args.tag)


def load_cli_config(args: argparse.Namespace) -> RAGConfig:
    """
    Load configuration and set up logging

    Raises:
        ConfigurationError: If no usable configuration file is found
    """
    config = load_config(args.config)
    if getattr(args, "verbose", False):
        config.logging.level = "DEBUG"
    configure_logging(config)
    return config


def report_config_error(error: ConfigurationError) -> int:
    print(f"❌ Error: {error}", file=sys.stderr)
    print("   Create .vault-rag.yml in your vault (see vault-rag.example.yml)", file=sys.stderr)
    return 1
