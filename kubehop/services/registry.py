"""Command template registry.

One registry instance is built at startup and handed to the
orchestrator. Domain modules populate it through their register_*
functions.
"""

import logging

from kubehop.models import CommandTemplate

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Maps action names to command templates."""

    def __init__(self) -> None:
        self._templates: dict[str, CommandTemplate] = {}

    def register(self, action: str, template: CommandTemplate) -> None:
        """Register a template under an action name.

        Re-registering an action replaces the previous template.

        Args:
            action: Action name, e.g. "installFirstMaster"
            template: Template to associate with the action
        """
        if action in self._templates:
            logger.debug("Replacing command template: %s", action)
        else:
            logger.debug("Registered command template: %s", action)
        self._templates[action] = template

    def lookup(self, action: str) -> CommandTemplate | None:
        """Get the template for an action, or None if unknown."""
        return self._templates.get(action)

    @property
    def actions(self) -> list[str]:
        """Sorted names of all registered actions."""
        return sorted(self._templates)

    def __contains__(self, action: object) -> bool:
        return action in self._templates

    def __len__(self) -> int:
        return len(self._templates)
