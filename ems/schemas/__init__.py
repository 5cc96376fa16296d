"""Data-boundary schemas (pydantic). Rows from the backend are validated here."""
