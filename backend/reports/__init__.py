"""Report scope and template rendering for the MOPS service."""

from reports.engine import TEMPLATE_SUFFIX, TemplateSet
from reports.scope import ReportScope

__all__ = [
    "TEMPLATE_SUFFIX",
    "ReportScope",
    "TemplateSet",
]
