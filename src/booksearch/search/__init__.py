"""
Search indexing and query engine package.

This package provides a pure-Python search stack for book indexes:
- analyzers: Tokenizer and pipeline filters (trimmer, stop words, stemming)
- schema: Searchable fields, boosts and the ref key
- inverted_index: Per-field character trie with df/tf statistics
- document_store: Stored sections and field lengths
- search_index: Document indexing and TF-IDF scoring
- book_index: The full payload (URLs, index, options)
- serialization: searchindex.js / searchindex.json I/O
- validation: Consistency audit
"""
