"""MCP resources: the read side of the circulation server."""

from .books import book_resources
from .members import member_resources

all_resources = [*member_resources, *book_resources]

__all__ = ["all_resources", "book_resources", "member_resources"]
