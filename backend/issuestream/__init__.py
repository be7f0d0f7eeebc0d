"""issuestream: incremental ingestion of GitHub issues."""
