"""Memory store — typed knowledge records with search and relations.

Layout:
    <root>/
    ├── concepts/                      # One directory per memory type,
    ├── decisions/                     # one Markdown file per memory id
    ├── patterns/                      # (YAML frontmatter + content body)
    ├── references/
    ├── learnings/
    ├── issues/
    └── .index/search-index.json       # Derived term → id postings

Components: entities (records on disk), index (full-text postings),
relations (symmetric `related` edges), query (search/list), and store (the
façade that keeps the three consistent).
"""
