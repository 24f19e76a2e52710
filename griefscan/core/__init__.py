"""Syntax model, fact extraction, rule engine and aggregation."""
