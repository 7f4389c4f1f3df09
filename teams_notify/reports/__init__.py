"""Parsers, classifiers and exporters for commit logs and test reports."""
