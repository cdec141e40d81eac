"""
Email templates module - database backed templates, rendering and admin editing.
"""

from vulcan.modules.email_templates.models import EmailTemplate, TemplateFormat

__all__ = ["EmailTemplate", "TemplateFormat"]
