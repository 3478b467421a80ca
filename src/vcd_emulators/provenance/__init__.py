"""Dependency provenance reporting for package-lock.json based projects."""

from .aggregator import (
    build_report,
    collect_components,
    generate_dependencies_file,
    group_by_host,
)

__all__ = [
    'build_report',
    'collect_components',
    'generate_dependencies_file',
    'group_by_host',
]
