"""Core modules for jirabridge."""
