"""ORM Models — the documents table backing the document store."""
