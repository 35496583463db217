"""Test fixtures for the ownership resolution engine."""
