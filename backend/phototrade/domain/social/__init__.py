"""Friendship graph domain."""
