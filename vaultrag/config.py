"""
Configuration - Load .vault-rag.yml into typed settings

The configuration file is looked up in this order:
1. Explicit path (``--config`` on the command line)
2. ``RAG_CONFIG`` environment variable
3. ``.vault-rag.yml`` in the working directory or up to five parents

String values may reference environment variables as ``${NAME}`` so that
API keys never have to live in the file itself.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".vault-rag.yml"

EMBEDDING_PROVIDERS = ("ollama", "openrouter")
CHAT_PROVIDERS = ("ollama", "openrouter")


class ConfigurationError(ValueError):
    """Raised for invalid or missing configuration (fail fast, no partial work)"""
    pass


_ENV_REF = re.compile(r'\$\{([^}]+)\}')


def expand_env(value: Any) -> Any:
    """Expand ${VAR} references in strings (unset variables expand to "")"""
    if not isinstance(value, str):
        return value
    return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), value)


@dataclass
class VaultSettings:
    path: str = "."
    markdown_only: bool = True
    excluded_folders: List[str] = field(default_factory=list)


@dataclass
class IndexingSettings:
    chunk_size: int = 1000
    chunk_overlap: int = 200
    enable_redaction: bool = True
    custom_redaction_patterns: List[str] = field(default_factory=list)


@dataclass
class EmbeddingSettings:
    provider: str = "ollama"
    model: str = "nomic-embed-text"
    batch_size: int = 20
    batch_delay: float = 0.1
    host: Optional[str] = None
    api_key: str = ""


@dataclass
class RetrievalSettings:
    pool_size: int = 50
    max_context_chunks: int = 15


@dataclass
class ChatSettings:
    provider: str = "openrouter"
    model: str = "google/gemini-2.5-flash"
    host: Optional[str] = None
    api_key: str = ""
    history_window: int = 10


@dataclass
class StorageSettings:
    path: str = ".vault-rag/embeddings.json"


@dataclass
class SyncSettings:
    debounce_seconds: float = 2.0
    poll_interval: float = 5.0


@dataclass
class LoggingSettings:
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class RAGConfig:
    """Complete vault-rag configuration"""
    vault: VaultSettings = field(default_factory=VaultSettings)
    indexing: IndexingSettings = field(default_factory=IndexingSettings)
    embedding: EmbeddingSettings = field(default_factory=EmbeddingSettings)
    retrieval: RetrievalSettings = field(default_factory=RetrievalSettings)
    chat: ChatSettings = field(default_factory=ChatSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    notifications: Dict[str, Any] = field(default_factory=dict)
    source_path: Optional[Path] = None

    def validate(self) -> "RAGConfig":
        """Check cross-field constraints, raising ConfigurationError on the first problem"""
        idx = self.indexing
        if idx.chunk_size <= 0:
            raise ConfigurationError(f"indexing.chunk_size must be positive, got {idx.chunk_size}")
        if idx.chunk_overlap < 0:
            raise ConfigurationError(f"indexing.chunk_overlap must not be negative, got {idx.chunk_overlap}")
        if idx.chunk_overlap >= idx.chunk_size:
            raise ConfigurationError(
                f"indexing.chunk_overlap ({idx.chunk_overlap}) must be less than "
                f"indexing.chunk_size ({idx.chunk_size})"
            )
        if self.embedding.batch_size <= 0:
            raise ConfigurationError(f"embedding.batch_size must be positive, got {self.embedding.batch_size}")
        if self.embedding.batch_delay < 0:
            raise ConfigurationError("embedding.batch_delay must not be negative")
        if self.embedding.provider not in EMBEDDING_PROVIDERS:
            raise ConfigurationError(
                f"Unknown embedding.provider '{self.embedding.provider}' "
                f"(expected one of {', '.join(EMBEDDING_PROVIDERS)})"
            )
        if self.chat.provider not in CHAT_PROVIDERS:
            raise ConfigurationError(
                f"Unknown chat.provider '{self.chat.provider}' "
                f"(expected one of {', '.join(CHAT_PROVIDERS)})"
            )
        ret = self.retrieval
        if ret.max_context_chunks <= 0:
            raise ConfigurationError("retrieval.max_context_chunks must be positive")
        if ret.pool_size < ret.max_context_chunks:
            raise ConfigurationError(
                f"retrieval.pool_size ({ret.pool_size}) must be at least "
                f"retrieval.max_context_chunks ({ret.max_context_chunks})"
            )
        if self.chat.history_window < 0:
            raise ConfigurationError("chat.history_window must not be negative")
        return self

    @property
    def vault_root(self) -> Path:
        """Vault path, resolved relative to the config file's directory"""
        return self._resolve(self.vault.path)

    @property
    def storage_path(self) -> Path:
        """Vector store file, resolved relative to the config file's directory"""
        return self._resolve(self.storage.path)

    def _resolve(self, value: str) -> Path:
        path = Path(value).expanduser()
        if not path.is_absolute() and self.source_path is not None:
            path = self.source_path.parent / path
        return path


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping, got {type(value).__name__}")
    return {k: expand_env(v) for k, v in value.items()}


def _build(cls, values: Dict[str, Any], section: str):
    known = set(cls.__dataclass_fields__)
    unknown = set(values) - known
    if unknown:
        logger.warning(f"Ignoring unknown keys in '{section}': {sorted(unknown)}")
    try:
        return cls(**{k: v for k, v in values.items() if k in known})
    except TypeError as e:
        raise ConfigurationError(f"Invalid '{section}' section: {e}")


def _as_list(value: Any) -> List[str]:
    """Accept either a YAML list or a newline-separated block"""
    if value is None:
        return []
    if isinstance(value, str):
        return [line.strip() for line in value.splitlines() if line.strip()]
    return [str(v).strip() for v in value if str(v).strip()]


def config_from_dict(raw: Optional[Dict[str, Any]], source_path: Optional[Path] = None) -> RAGConfig:
    """Build and validate a RAGConfig from a parsed YAML mapping"""
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigurationError("Configuration root must be a mapping")

    vault = _build(VaultSettings, _section(raw, "vault"), "vault")
    vault.excluded_folders = _as_list(vault.excluded_folders)

    indexing = _build(IndexingSettings, _section(raw, "indexing"), "indexing")
    indexing.custom_redaction_patterns = _as_list(indexing.custom_redaction_patterns)

    config = RAGConfig(
        vault=vault,
        indexing=indexing,
        embedding=_build(EmbeddingSettings, _section(raw, "embedding"), "embedding"),
        retrieval=_build(RetrievalSettings, _section(raw, "retrieval"), "retrieval"),
        chat=_build(ChatSettings, _section(raw, "chat"), "chat"),
        storage=_build(StorageSettings, _section(raw, "storage"), "storage"),
        sync=_build(SyncSettings, _section(raw, "sync"), "sync"),
        logging=_build(LoggingSettings, _section(raw, "logging"), "logging"),
        notifications=raw.get("notifications") or {},
        source_path=source_path,
    )
    return config.validate()


def find_config_file(config_path: Optional[str] = None) -> Path:
    """
    Locate the configuration file

    Args:
        config_path: Explicit path (takes precedence over everything else)

    Returns:
        Path to an existing configuration file

    Raises:
        ConfigurationError: If no configuration file can be found
    """
    if config_path:
        candidate = Path(config_path).expanduser()
        if candidate.exists():
            return candidate
        raise ConfigurationError(f"Configuration file not found: {candidate}")

    env_path = os.getenv("RAG_CONFIG")
    if env_path:
        candidate = Path(env_path).expanduser()
        if candidate.exists():
            return candidate
        raise ConfigurationError(f"RAG_CONFIG points to a missing file: {candidate}")

    search_path = Path.cwd()
    for _ in range(6):
        candidate = search_path / DEFAULT_CONFIG_NAME
        if candidate.exists():
            return candidate
        if search_path.parent == search_path:
            break
        search_path = search_path.parent

    raise ConfigurationError(
        f"No {DEFAULT_CONFIG_NAME} found in {Path.cwd()} or its parents. "
        f"Copy vault-rag.example.yml to {DEFAULT_CONFIG_NAME} or set RAG_CONFIG."
    )


def load_config(config_path: Optional[str] = None) -> RAGConfig:
    """Find, parse and validate the configuration file"""
    path = find_config_file(config_path)
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Could not parse {path}: {e}")

    logger.debug(f"Configuration loaded from {path}")
    return config_from_dict(raw, source_path=path.resolve())


def configure_logging(config: RAGConfig) -> None:
    """Apply logging.level and logging.file from the configuration"""
    level = getattr(logging, str(config.logging.level).upper(), None)
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown logging.level '{config.logging.level}'")

    handlers: List[logging.Handler] = []
    if config.logging.file:
        log_file_path = config._resolve(config.logging.file)
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file_path))
    else:
        handlers.append(logging.StreamHandler())

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )
