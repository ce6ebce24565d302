"""Workers package: statement ingestion job runner."""
