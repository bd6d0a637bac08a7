"""
Database models for SnapLink.

Links carry their click aggregates directly; the five metadata sets live in
the link_attributes child table so set-union is a conflict-ignoring insert.
"""

from .link import Link, LinkAttribute, AttributeKind
from .counter import CounterRow
from .feedback import Feedback

__all__ = ["Link", "LinkAttribute", "AttributeKind", "CounterRow", "Feedback"]
