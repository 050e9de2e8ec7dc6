"""Database driver adapters for sqltag."""
