"""Finance Tracker: accounts, credit cards, categorized transactions and AI-assisted statement ingestion."""
