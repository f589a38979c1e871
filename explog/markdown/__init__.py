"""Markdown note handling: ExpLog table and front matter."""
