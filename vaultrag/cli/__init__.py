"""Command-line tools: vault-index, vault-search, vault-ask, vault-watch"""
