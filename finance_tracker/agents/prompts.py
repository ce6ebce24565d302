"""Prompts for the statement parsing and categorization agents."""

STATEMENT_SYSTEM_PROMPT = """
You are an expert at extracting data from bank and credit card statements.
You always answer with a JSON object holding an array of transactions.
"""

ASSET_RULES = (
    "This is a BANK ACCOUNT statement: DEPOSITS and CREDITS are income, "
    "WITHDRAWALS, CHARGES and DEBITS are expense."
)

CREDIT_RULES = (
    "This is a CREDIT CARD statement: ALL CHARGES and PURCHASES are expense, "
    "PAYMENTS and CREDITS to the card are income."
)

STATEMENT_USER_PROMPT_TEMPLATE = """Extract ALL transactions from the following statement text.

{sign_rules}

Rules:
- Extract EVERY transaction you can find, in the order they appear.
- Dates must use the format YYYY-MM-DD.
- Amounts must be positive numbers; the "type" field tells income from expense.
- Keep the description as printed on the statement, without the date and amount.
- Ignore running balances, totals and summary lines.

Statement text:
{text}

Answer with a JSON object like:
{{"transactions": [{{"date": "2024-01-15", "description": "Transaction description",
"amount": 150.50, "type": "income"}}]}}"""

CATEGORY_SYSTEM_PROMPT = """
You are an expert at classifying personal finance transactions.
You always answer with a JSON object.
"""

CATEGORY_USER_PROMPT_TEMPLATE = """Analyze the following transaction and decide:
1. Whether it is INCOME or an EXPENSE.
2. The most appropriate category, chosen from the available list. Use the category name exactly as listed.

Transaction:
- Description: {description}
- Amount: {amount}

Available categories:
{categories}

Answer ONLY with a JSON object in this exact format:
{{"type": "income" or "expense", "categoryName": "category name"}}"""
