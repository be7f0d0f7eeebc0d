"""Core utilities shared across issuestream."""
