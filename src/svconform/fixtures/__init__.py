"""Conformance fixtures: directive parsing and discovery."""

from svconform.fixtures.loader import TestCase, TestRegistry
from svconform.fixtures.metadata import FixtureMetadata, FixtureReadError, parse_metadata

__all__ = [
    "FixtureMetadata",
    "FixtureReadError",
    "TestCase",
    "TestRegistry",
    "parse_metadata",
]
