"""Services package: object storage, statement text extraction and reporting helpers."""
