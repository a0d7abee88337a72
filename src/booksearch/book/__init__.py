"""Turn an mdBook-style source tree into a search index.

- summary: SUMMARY.md parsing (chapter order and hierarchy)
- sections: markdown chapter -> searchable sections
- builder: book directory -> BookSearchIndex
"""
