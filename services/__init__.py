"""Service layer for transactions, budgets and summaries."""
