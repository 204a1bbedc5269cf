"""Shared test data for the bookmark importer tests."""
