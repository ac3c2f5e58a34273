"""Tests for maziq."""
