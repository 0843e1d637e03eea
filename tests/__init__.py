"""Tests for biblio_sync."""
