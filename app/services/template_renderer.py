"""Renders notification templates by {{variable}} substitution."""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from app.repositories.base import TemplateRepository
from app.services.triggers.base import CandidateNotification

logger = logging.getLogger(__name__)

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render_template(template: str, variables: dict) -> str:
    """Replace {{name}} with str(variables[name]); unknown names are left as-is."""

    def substitute(match: re.Match) -> str:
        name = match.group(1)
        if name not in variables or variables[name] is None:
            return match.group(0)
        return str(variables[name])

    return PLACEHOLDER.sub(substitute, template)


@dataclass(frozen=True)
class RenderedNotification:
    notification_type: str
    title: str
    body: str
    priority: int
    action_url: Optional[str] = None
    action_label: Optional[str] = None


class TemplateRenderer:
    def __init__(self, templates: TemplateRepository):
        self.templates = templates

    async def render(self, candidate: CandidateNotification) -> Optional[RenderedNotification]:
        """Render the candidate's template, or None when no active template exists."""
        template = await self.templates.get_active(candidate.template_key)
        if template is None:
            logger.warning(f"Template not found: {candidate.template_key}")
            return None

        variables = candidate.variables
        # Action URLs usually link to the entity, so metadata ids are available too
        url_variables = {**candidate.metadata, **variables}

        return RenderedNotification(
            notification_type=template.type,
            title=render_template(template.title_template, variables),
            body=render_template(template.body_template, variables),
            priority=candidate.priority,
            action_url=(
                render_template(template.action_url_template, url_variables)
                if template.action_url_template else None
            ),
            action_label=(
                render_template(template.action_label, variables)
                if template.action_label else None
            ),
        )
