"""
Search indexing and query engine package.

This package provides the in-memory search stack:
- analyzers: Tokenizer shared by indexing, resolution and ranking
- staging: Per-build disk staging of batch-local indexes
- indexer: Batched exact/prefix/n-gram index construction
- snapshot: Immutable index snapshots and atomic publication
- resolver: Multi-token candidate gathering and intersection
- ranking: Heuristic relevance scoring
"""
