"""Services package: date resolution, transactions, authentication, and summaries."""
