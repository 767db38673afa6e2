"""Shared helpers for the DynamoDB client tests."""
