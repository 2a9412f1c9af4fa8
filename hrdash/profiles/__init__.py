"""Profiles module — Profile model, schemas and repository."""

from hrdash.profiles.models import Profile

__all__ = ["Profile"]
