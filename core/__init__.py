"""Core (UI-agnostic) grant explorer logic.

This package contains:
- cell normalization (headers, numeric coercion, multi-value explosion, options)
- filter state and its transitions
- the query engine (predicates, counts, funding totals)
- artifact building/loading (XLSX/CSV -> grants.json + options.json)
- page compute functions (JSON-serializable payloads)
"""
